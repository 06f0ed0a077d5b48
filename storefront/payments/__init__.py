"""
Feature 'payments': création d'intents et de sessions Stripe, lectures Stripe.
"""
