"""
Error taxonomy for week calculation and matchup synchronization.

Run-level errors (SourceFetchError, ConfigurationError) fail a whole sync run.
Per-game errors (MappingError, PersistenceError) are collected into the sync
result and never abort the batch.
"""


class PoolSyncError(Exception):
    """Base class for synchronization errors"""


class SourceFetchError(PoolSyncError):
    """The external schedule source failed or timed out"""

    def __init__(self, message, source=None):
        super().__init__(message)
        self.source = source


class MappingError(PoolSyncError):
    """A single provider record could not be normalized"""


class PersistenceError(PoolSyncError):
    """A single database write failed"""


class DuplicateMatchupError(PersistenceError):
    """An insert lost the race against another insert for the same matchup key"""

    def __init__(self, message, matchup_id=None):
        super().__init__(message)
        self.matchup_id = matchup_id


class ConfigurationError(PoolSyncError):
    """Required external configuration is missing or invalid"""
