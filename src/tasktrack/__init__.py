"""TaskTrack — multi-tenant task tracking API.

Users register, log in, and manage the tasks they own. Administrators
can see and manage every task and list every user. Every task operation
passes through token authentication, role checks, and per-task ownership.
"""

__version__ = "0.1.0"
