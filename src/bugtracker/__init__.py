"""Bugtracker — issue tracking backend.

Projects own issues, issues own comments. Users authenticate with JWT
(bearer header or cookie); project ownership, membership and user roles
decide who may read, change or delete what.
"""

__version__ = "0.1.0"
