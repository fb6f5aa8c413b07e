"""Order service: order lifecycle, ownership checks and payment-driven status updates."""

__version__ = "1.0.0"
