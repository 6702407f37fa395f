"""ASGI transport: response sending and the pounce server runner."""
