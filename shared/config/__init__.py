"""
Configuration module: Settings, logging, constants.
"""

from shared.config.settings import settings, get_settings, Settings
from shared.config.logging import get_logger, setup_logging
from shared.config.constants import (
    Roles,
    Workstations,
    Plans,
    CashSessionStatus,
    WaitlistStatus,
    PaymentMethods,
    StorageKeys,
    Routes,
    Limits,
    WORKSTATION_BY_ROLE,
)

__all__ = [
    # settings
    "settings",
    "get_settings",
    "Settings",
    # logging
    "get_logger",
    "setup_logging",
    # constants
    "Roles",
    "Workstations",
    "Plans",
    "CashSessionStatus",
    "WaitlistStatus",
    "PaymentMethods",
    "StorageKeys",
    "Routes",
    "Limits",
    "WORKSTATION_BY_ROLE",
]
