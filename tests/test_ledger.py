"""Unit tests for the session ledger and its retention policies."""

from ephemeral.ledger import RETENTION_FOREVER, RETENTION_TTL, SessionLedger


class TestRecords:
    def test_either_record_blocks(self):
        ledger = SessionLedger()
        ledger.record_left("sid-a", "Alice", "4821", now=0)

        assert ledger.has_left_sid("sid-a", "4821")
        assert ledger.has_left_name("Alice", "4821")

    def test_records_are_per_code(self):
        ledger = SessionLedger()
        ledger.record_left("sid-a", "Alice", "4821", now=0)

        assert not ledger.has_left_sid("sid-a", "1234")
        assert not ledger.has_left_name("Alice", "1234")
        assert not ledger.has_left_sid("sid-b", "4821")

    def test_missing_name_never_matches(self):
        ledger = SessionLedger()
        ledger.record_left("sid-a", "", "4821", now=0)

        assert not ledger.has_left_name("", "4821")
        assert not ledger.has_left_name(None, "4821")
        assert len(ledger) == 1


class TestRetention:
    def test_forever_never_prunes(self):
        ledger = SessionLedger(retention=RETENTION_FOREVER, ttl=10)
        ledger.record_left("sid-a", "Alice", "4821", now=0)

        assert ledger.prune(now=10_000) == 0
        assert ledger.has_left_sid("sid-a", "4821")

    def test_ttl_prunes_old_records_only(self):
        ledger = SessionLedger(retention=RETENTION_TTL, ttl=100)
        ledger.record_left("sid-a", "Alice", "4821", now=0)
        ledger.record_left("sid-b", "Bob", "4821", now=50)

        assert ledger.prune(now=120) == 2
        assert not ledger.has_left_sid("sid-a", "4821")
        assert ledger.has_left_sid("sid-b", "4821")
        assert ledger.has_left_name("Bob", "4821")

    def test_max_entries_evicts_oldest(self):
        ledger = SessionLedger(max_entries=2)
        ledger.record_left("sid-a", "Alice", "0001", now=0)
        ledger.record_left("sid-b", "Bob", "0002", now=1)

        assert len(ledger) == 2
        assert not ledger.has_left_sid("sid-a", "0001")
        assert ledger.has_left_name("Bob", "0002")

    def test_unknown_policy_falls_back_to_forever(self):
        ledger = SessionLedger(retention="sometimes")
        assert ledger.retention == RETENTION_FOREVER
