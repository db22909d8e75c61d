from tournament.tests.mocks.hole_result_log import InMemoryHoleResultLog

__all__ = ["InMemoryHoleResultLog"]
