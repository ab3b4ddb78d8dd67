"""Domain layer for the laundry order backend.

Pricing, scheduling and the order state machine live here. This package is
framework-agnostic: it never imports Flask or the ORM, so its rules are
testable without an application context.
"""
