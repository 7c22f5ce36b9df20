"""
Workstation API: employee login, workstation dispatch, cash register and
waitlist endpoints over the shared session store.
"""

__version__ = "1.0.0"
