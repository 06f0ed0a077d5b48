"""
Lancement local: `python -m storefront`.
Hôte, port, reload et niveau de logs viennent des Settings (HOST, PORT, UVICORN_RELOAD, LOG_LEVEL).
"""
from typing import Optional

import uvicorn

from storefront.config import Settings, load_settings


def main(settings: Optional[Settings] = None) -> None:
    settings = settings or load_settings()
    uvicorn.run(
        "storefront.asgi:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload and settings.is_development,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
