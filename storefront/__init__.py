"""
Storefront: paiements Stripe (intent embarqué, Checkout hébergé), webhook
idempotent de création de commande, catalogue produits et notifications.
"""
__version__ = "1.0.0"
