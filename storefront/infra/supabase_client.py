from typing import Optional
from supabase import create_client, Client


class SupabaseProvider:
    """
    Client Supabase unique par process, créé au premier usage.
    Construit dans le lifespan à partir des Settings (plus d'instance globale de module).
    """

    def __init__(self, url: str, key: str):
        self.url = url
        self.key = key
        self._client: Optional[Client] = None

    def get(self) -> Client:
        if self._client is None:
            if not self.url or not self.key:
                raise RuntimeError("SUPABASE_URL/SUPABASE_KEY manquants")
            self._client = create_client(self.url, self.key)
        return self._client

    def close(self) -> None:
        self._client = None
