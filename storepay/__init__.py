"""storepay: payment gateway abstraction for a multi-vendor storefront."""

__version__ = "1.0.0"
