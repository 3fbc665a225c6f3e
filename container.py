"""
Repository Container - Centralized dependency injection container

Single source of truth for repository initialization, shared by the HTTP
app and the command line utilities.
"""

from query import DatabaseClient
from repositories import (
    JournalEntriesRepository,
    JournalCommentsRepository,
    AdventureStatsRepository,
    MilestonesRepository,
)


class RepositoryContainer:
    """
    Container for repository instances with attribute access.

    All repositories share one DatabaseClient (and so one executor and its
    column-type cache).
    """
    def __init__(self, client: DatabaseClient):
        self.client = client
        self.journal = JournalEntriesRepository(client)
        self.comments = JournalCommentsRepository(client)
        self.stats = AdventureStatsRepository(client)
        self.milestones = MilestonesRepository(client)
