"""
HomeCare Marketplace

Home maintenance tracking for homeowners, a vetted provider marketplace
with scheduling and bookings, and Stripe-backed subscription plans.
"""

__version__ = "1.0.0"
