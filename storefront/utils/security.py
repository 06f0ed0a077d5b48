from fastapi import Request, HTTPException
import bcrypt

ADMIN_HEADER_NAME = "X-Admin-Code"


def require_admin(request: Request) -> bool:
    """
    Garde des endpoints d'administration (mise à jour de prix, listing commandes).
    - Compare l'en-tête X-Admin-Code au hash bcrypt ADMIN_SECRET_HASH.
    - 403 si aucun hash n'est configuré, 401 si code absent ou invalide.
    """
    settings = request.app.state.settings
    admin_hash = settings.admin_secret_hash
    if not admin_hash:
        raise HTTPException(status_code=403, detail="Admin access disabled")
    code = (request.headers.get(ADMIN_HEADER_NAME) or "").strip()
    if not code:
        raise HTTPException(status_code=401, detail="Missing admin code")
    try:
        valid = bcrypt.checkpw(code.encode("utf-8"), admin_hash.encode("utf-8"))
    except ValueError:
        # Hash mal formé dans l'environnement
        valid = False
    if not valid:
        raise HTTPException(status_code=401, detail="Invalid admin code")
    return True
