import threading

import pytest
from notifications.domain import notifications
from notifications.errors import StoreUnavailable
from notifications.idempotency.guard import IdempotencyGuard, content_key, idempotency_key
from notifications.notification.notification import NotificationRecord, NotificationStatus
from notifications.notification.request import NotificationRequest, Recipient
from notifications.services import configure_services
from notifications.store import set_store
from notifications.store.memory import InMemoryStore
from protean import current_domain


def _request(**overrides):
    defaults = {
        "type": "ORDER_CONFIRMATION",
        "recipients": [Recipient(email="buyer@example.com")],
        "channels": ["EMAIL"],
        "template_variables": {"orderNumber": "ORD-7"},
    }
    defaults.update(overrides)
    return NotificationRequest(**defaults)


def _record_count():
    return current_domain.repository_for(NotificationRecord)._dao.query.all().total


class TestClaim:
    def test_first_claim_wins(self):
        guard = IdempotencyGuard(InMemoryStore())

        assert guard.claim("order-1", "n-1").already_exists is False
        replay = guard.claim("order-1", "n-2")
        assert replay.already_exists is True
        assert replay.existing_notification_id == "n-1"

    def test_claim_expires_with_ttl(self, clock):
        guard = IdempotencyGuard(InMemoryStore(clock=clock))
        guard.claim("order-1", "n-1", ttl_seconds=60)

        clock.now += 61
        assert guard.claim("order-1", "n-2").already_exists is False

    def test_concurrent_claims_have_one_winner(self):
        guard = IdempotencyGuard(InMemoryStore())
        barrier = threading.Barrier(8)
        results = []

        def claim(i):
            barrier.wait()
            results.append(guard.claim("order-race", f"n-{i}"))

        threads = [threading.Thread(target=claim, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        winners = [r for r in results if not r.already_exists]
        assert len(winners) == 1
        assert len({r.existing_notification_id for r in results if r.already_exists}) == 1

    def test_release_only_by_owner(self):
        store = InMemoryStore()
        guard = IdempotencyGuard(store)
        guard.claim("order-1", "n-1")

        guard.release("order-1", "n-other")
        assert store.get(idempotency_key("order-1")) == "n-1"

        guard.release("order-1", "n-1")
        assert store.get(idempotency_key("order-1")) is None

    def test_store_key_overwrites(self):
        store = InMemoryStore()
        guard = IdempotencyGuard(store)
        guard.claim("order-1", "n-1")
        guard.store_key("order-1", "n-9")
        assert store.get(idempotency_key("order-1")) == "n-9"

    def test_store_failure_fails_open(self, broken_store):
        guard = IdempotencyGuard(broken_store)
        assert guard.claim("order-1", "n-1").already_exists is False

    def test_store_failure_raises_when_strict(self, broken_store):
        guard = IdempotencyGuard(broken_store)
        with pytest.raises(StoreUnavailable):
            guard.claim("order-1", "n-1", strict=True)


class TestContentDedup:
    def test_same_content_in_window_is_duplicate(self):
        guard = IdempotencyGuard(InMemoryStore())
        assert guard.is_duplicate_content("u1:EMAIL", "Hello") is False
        assert guard.is_duplicate_content("u1:EMAIL", "  hello ") is True

    def test_other_slot_is_not_duplicate(self):
        guard = IdempotencyGuard(InMemoryStore())
        guard.is_duplicate_content("u1:EMAIL", "Hello")
        assert guard.is_duplicate_content("u2:EMAIL", "Hello") is False

    def test_window_expiry(self, clock):
        guard = IdempotencyGuard(InMemoryStore(clock=clock))
        guard.is_duplicate_content("u1:EMAIL", "Hello", window_seconds=300)
        clock.now += 301
        assert guard.is_duplicate_content("u1:EMAIL", "Hello", window_seconds=300) is False

    def test_release_content_frees_the_slot(self):
        store = InMemoryStore()
        guard = IdempotencyGuard(store)
        guard.is_duplicate_content("u1:EMAIL", "Hello")
        guard.release_content("u1:EMAIL", "Hello")
        assert store.get(content_key("u1:EMAIL", "Hello")) is None

    def test_store_failure_is_never_duplicate(self, broken_store):
        assert IdempotencyGuard(broken_store).is_duplicate_content("u1:EMAIL", "Hello") is False


class TestOrchestratorIdempotency:
    def test_replayed_key_returns_original_id(self, orchestrator, email):
        first = orchestrator.send_notification(_request(idempotency_key="OrderCreated:o-1"))
        second = orchestrator.send_notification(_request(idempotency_key="OrderCreated:o-1"))

        assert first == second
        assert _record_count() == 1
        assert len(email.sent_emails) == 1

    def test_different_keys_create_different_records(self, orchestrator):
        first = orchestrator.send_notification(_request(idempotency_key="k-1"))
        second = orchestrator.send_notification(_request(idempotency_key="k-2"))
        assert first != second

    def test_keyed_requests_skip_content_dedup(self, orchestrator, email):
        orchestrator.send_notification(_request(idempotency_key="k-1"))
        orchestrator.send_notification(_request(idempotency_key="k-2"))
        assert len(email.sent_emails) == 2

    def test_unkeyed_duplicate_content_is_skipped(self, orchestrator, email):
        orchestrator.send_notification(_request())
        second = orchestrator.send_notification(_request())

        record = current_domain.repository_for(NotificationRecord).get(second)
        assert record.status == NotificationStatus.FAILED.value
        assert record.failure_reason == "All channels skipped"
        assert len(email.sent_emails) == 1

    def test_failed_delivery_releases_content_slot(self, orchestrator, email):
        email.configure(should_succeed=False)
        orchestrator.send_notification(_request())

        email.configure(should_succeed=True)
        orchestrator.send_notification(_request())
        assert len(email.sent_emails) == 1

    def test_strict_request_fails_when_store_is_down(self, broken_store):
        set_store(broken_store)
        orchestrator = configure_services()["orchestrator"]

        with pytest.raises(StoreUnavailable):
            orchestrator.send_notification(_request(idempotency_key="k-1", strict_idempotency=True))
        assert _record_count() == 0

    def test_lenient_request_proceeds_when_store_is_down(self, email, broken_store):
        set_store(broken_store)
        orchestrator = configure_services()["orchestrator"]

        notification_id = orchestrator.send_notification(_request(idempotency_key="k-1"))

        record = current_domain.repository_for(NotificationRecord).get(notification_id)
        assert record.status == NotificationStatus.SENT.value
        assert len(email.sent_emails) == 1

    def test_concurrent_sends_with_one_key_create_one_record(self, orchestrator, email):
        barrier = threading.Barrier(8)
        ids, errors = [], []

        def send():
            with notifications.domain_context():
                barrier.wait()
                try:
                    ids.append(orchestrator.send_notification(_request(idempotency_key="OrderCreated:o-race")))
                except Exception as exc:  # surfaced by the assertion below
                    errors.append(exc)

        threads = [threading.Thread(target=send) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(ids) == 8
        assert len(set(ids)) == 1
        assert _record_count() == 1
        assert len(email.sent_emails) == 1
