from draft.logic.state import Draft
from shared.dal import InMemoryDraftStore


class ContendedDraftStore(InMemoryDraftStore):
    """In-memory store whose commits always lose the race while ``contended`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.contended = False
        self.attempts = 0

    async def _compare_and_set(self, current: Draft, updated: Draft) -> bool:
        if self.contended:
            self.attempts += 1
            return False
        return await super()._compare_and_set(current, updated)
