"""
Shared service instances — built once by create_app() and attached to the app.

    app.extensions['lead_client']    Supabase REST client (or the null client)
    app.extensions['lead_monitors']  per-session LeadMonitor registry

Routes reach them through the accessors below, never through module globals,
so tests can hand create_app() their own client.
"""
import logging

from flask import current_app

from app.config import MAX_MONITORS, SUPABASE_ANON_KEY, SUPABASE_TIMEOUT, SUPABASE_URL
from app.services.monitor import LeadMonitor, MonitorFeatures, MonitorRegistry
from app.services.supabase import build_supabase_client

logger = logging.getLogger('app.extensions')


def init_extensions(app, lead_client=None, features=None):
    """Attach the data service client and monitor registry to the app."""
    if lead_client is None:
        lead_client = build_supabase_client(SUPABASE_URL, SUPABASE_ANON_KEY, timeout=SUPABASE_TIMEOUT)
    features = features or MonitorFeatures.from_config()

    app.extensions['lead_client'] = lead_client
    app.extensions['monitor_features'] = features
    app.extensions['lead_monitors'] = MonitorRegistry(
        lambda: LeadMonitor(lead_client, features=features),
        max_size=MAX_MONITORS,
    )
    logger.info("Lead monitor ready (data service %s)",
                'configured' if lead_client.configured else 'NOT configured')


def get_lead_client():
    return current_app.extensions['lead_client']


def get_monitors():
    return current_app.extensions['lead_monitors']
