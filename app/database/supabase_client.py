from supabase import create_client, Client
from app.config.settings import settings


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Used for table access and admin auth calls."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_client()

    @classmethod
    def new_auth_client(cls) -> Client:
        """Fresh anon client for sign-up/sign-in so session state never leaks into the shared clients."""
        return create_client(settings.supabase_url, settings.supabase_key)

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_service_client()


UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: Exception) -> bool:
    """True for a Postgres unique_violation surfaced by PostgREST"""
    return getattr(exc, "code", None) == UNIQUE_VIOLATION or UNIQUE_VIOLATION in str(exc)
