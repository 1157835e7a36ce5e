"""Exceptions raised by the analysis pipeline."""


class AnalysisError(Exception):
    """Base class for pipeline errors."""


class CompetitorNotFoundError(AnalysisError):
    """Raised when a competitor id does not exist."""

    def __init__(self, competitor_id: str):
        super().__init__(f"Competitor with ID {competitor_id} not found")
        self.competitor_id = competitor_id


class DuplicateCompetitorError(AnalysisError, ValueError):
    """Raised when an update would give a competitor the identity of another tracked profile."""

    def __init__(self, key, owner_id: str):
        super().__init__(f"Competitor identity {'/'.join(key)} is already tracked as {owner_id}")
        self.key = key
        self.owner_id = owner_id
