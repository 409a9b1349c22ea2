from draft.tests.mocks.clock import FakeClock
from draft.tests.mocks.candidates import MockCandidateSource
from draft.tests.mocks.store import ContendedDraftStore

__all__ = ["ContendedDraftStore", "FakeClock", "MockCandidateSource"]
