"""
ASGI entrypoint: expose `app` pour les process managers (uvicorn, gunicorn + UvicornWorker).
Toute la configuration est centralisée dans storefront.app_setup.create_app.
"""
from storefront.app_setup import create_app

app = create_app()
