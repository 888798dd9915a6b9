"""
Data Transfer Objects (DTOs) Layer

This package contains DTOs that decouple the API layer from the domain entities.
DTOs keep raw payload bytes and internal state out of API responses and allow
independent evolution.

Structure:
- request/: DTOs for incoming API requests
- response/: DTOs for outgoing API responses and WebSocket events
"""
