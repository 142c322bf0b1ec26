"""
shopstack: traced e-commerce microservices.

Auth, product, cart, order and todo services sharing one tracing,
logging and metrics layer.
"""

__version__ = "0.1.0"
__author__ = "ML Roadmap Bootcamp"
