"""
Environment Checks

Time-window and network-origin tests shared by RuBAC and ABAC.
"""

from datetime import datetime
from typing import Iterable, Optional

from config import get_settings


def is_working_hours(
    now: Optional[datetime] = None,
    start_hour: Optional[int] = None,
    end_hour: Optional[int] = None,
) -> bool:
    """
    Check whether ``now`` falls inside the working-hours window.

    The window is ``[start_hour, end_hour)`` in local time; hours default to
    the configured ``working_hours_start``/``working_hours_end``.
    """
    settings = get_settings()
    now = now or datetime.now()
    start = settings.working_hours_start if start_hour is None else start_hour
    end = settings.working_hours_end if end_hour is None else end_hour
    return start <= now.hour < end


def is_company_network(
    address: Optional[str],
    prefixes: Optional[Iterable[str]] = None,
    hosts: Optional[Iterable[str]] = None,
) -> bool:
    """
    Check whether a network origin belongs to the company network.

    Args:
        address: Client address; None or "unknown" never matches
        prefixes: Address prefixes (default: configured private ranges)
        hosts: Exact addresses (default: configured hosts)
    """
    if not address or address == "unknown":
        return False

    settings = get_settings()
    prefixes = settings.company_network_prefixes if prefixes is None else prefixes
    hosts = settings.company_network_hosts if hosts is None else hosts

    if address in hosts:
        return True
    return any(address.startswith(prefix) for prefix in prefixes)
