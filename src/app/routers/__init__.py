# Routers package
from . import (
    payment_router,
    webhook_router,
)

__all__ = [
    "payment_router",
    "webhook_router",
]
