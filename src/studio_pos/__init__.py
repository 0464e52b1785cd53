"""Studio POS package.

Point-of-sale and membership tracking for a dance studio, organized by
feature modules (cards, checkins, owners, payments, ...) with a thin Flask
controller layer on top of service/repository layers.
"""
