"""Supabase client factories.

The service-role client is shared by the whole process and bypasses row level
security, so every query made through it must be scoped by the caller's id or
guarded by the ownership check. Password sign-in and sign-up mutate the
client's auth session, so they get a fresh anon client per call.
"""

from functools import lru_cache

from supabase import Client, create_client

from chat_relay.config.settings import get_settings


@lru_cache()
def get_supabase() -> Client:
    settings = get_settings()
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def get_anon_supabase() -> Client:
    settings = get_settings()
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
