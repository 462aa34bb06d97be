import tempfile
import unittest
from pathlib import Path

from room_reservation import ReservationEventLog, ReservationStorageError, StoreConflict, YamlKeyValueStore


class TestYamlKeyValueStore(unittest.TestCase):
    def test_commit_persists_across_reopen(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            store = YamlKeyValueStore(data_dir)
            with store.transaction() as txn:
                txn.set("2026-02-24|large|2", "b")
                txn.set("2026-02-24|large|1", "a")

            reopened = YamlKeyValueStore(data_dir)

            self.assertEqual(
                reopened.iterate_prefix("2026-02-24|"),
                [("2026-02-24|large|1", "a"), ("2026-02-24|large|2", "b")],
            )
            self.assertEqual(len(reopened), 2)

    def test_exception_inside_block_discards_writes(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = YamlKeyValueStore(Path(temp_dir) / "data")
            with self.assertRaises(RuntimeError):
                with store.transaction() as txn:
                    txn.set("k", "v")
                    raise RuntimeError("boom")

            self.assertEqual(store.iterate_prefix(), [])

    def test_transaction_sees_own_writes_but_not_later_commits(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = YamlKeyValueStore(Path(temp_dir) / "data")
            txn = store.transaction()
            txn.set("a|1", "mine")
            with store.transaction() as other:
                other.set("b|1", "theirs")

            self.assertEqual(txn.iterate_prefix(""), [("a|1", "mine")])
            self.assertEqual(txn.get("a|1"), "mine")
            self.assertIsNone(txn.get("b|1"))
            txn.discard()

    def test_racing_scans_of_same_prefix_conflict(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = YamlKeyValueStore(Path(temp_dir) / "data")
            first = store.transaction()
            second = store.transaction()
            first.iterate_prefix("2026-02-24|large|")
            second.iterate_prefix("2026-02-24|large|")
            first.set("2026-02-24|large|1", "a")
            second.set("2026-02-24|large|2", "b")

            first.commit()
            with self.assertRaises(StoreConflict):
                second.commit()

            self.assertEqual(store.iterate_prefix(), [("2026-02-24|large|1", "a")])

    def test_disjoint_prefixes_commit_independently(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = YamlKeyValueStore(Path(temp_dir) / "data")
            first = store.transaction()
            second = store.transaction()
            first.iterate_prefix("2026-02-24|large|")
            second.iterate_prefix("2026-02-24|small|")
            first.set("2026-02-24|large|1", "a")
            second.set("2026-02-24|small|1", "b")

            first.commit()
            second.commit()

            self.assertEqual(len(store), 2)

    def test_duplicate_key_conflicts(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = YamlKeyValueStore(Path(temp_dir) / "data")
            with store.transaction() as txn:
                txn.set("k", "v1")

            with self.assertRaises(StoreConflict):
                with store.transaction() as txn:
                    txn.set("k", "v2")

            self.assertEqual(store.iterate_prefix(), [("k", "v1")])

    def test_drop_all_conflicts_with_open_transactions(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = YamlKeyValueStore(Path(temp_dir) / "data")
            with store.transaction() as txn:
                txn.set("k1", "v")
            pending = store.transaction()
            pending.set("k2", "v")

            self.assertEqual(store.drop_all(), 1)
            with self.assertRaises(StoreConflict):
                pending.commit()
            self.assertEqual(store.iterate_prefix(), [])

    def test_view_is_read_only(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = YamlKeyValueStore(Path(temp_dir) / "data")
            with self.assertRaises(ReservationStorageError):
                with store.view() as txn:
                    txn.set("k", "v")

    def test_closed_transaction_rejects_reads(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = YamlKeyValueStore(Path(temp_dir) / "data")
            txn = store.transaction()
            txn.discard()
            with self.assertRaises(ReservationStorageError):
                txn.iterate_prefix("")

    def test_corrupted_yaml_is_backed_up_and_logged(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            data_dir.mkdir(parents=True)
            (data_dir / "reservations.yaml").write_text("{unclosed: [", encoding="utf-8")
            event_log = ReservationEventLog(data_dir / "reservation_events.yaml")

            store = YamlKeyValueStore(data_dir, event_log=event_log)

            self.assertEqual(store.iterate_prefix(), [])
            self.assertTrue(list(data_dir.glob("reservations.corrupt.*.yaml")))
            self.assertEqual([event["event_type"] for event in event_log.events()], ["YAML_RECOVERED"])

    def test_non_string_entries_are_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            data_dir.mkdir(parents=True)
            (data_dir / "reservations.yaml").write_text("good: value\nbad: [1, 2]\n", encoding="utf-8")
            event_log = ReservationEventLog(data_dir / "reservation_events.yaml")

            store = YamlKeyValueStore(data_dir, event_log=event_log)

            self.assertEqual(store.iterate_prefix(), [("good", "value")])
            self.assertEqual(event_log.events()[0]["event_type"], "RECORD_SKIPPED")


class TestReservationEventLog(unittest.TestCase):
    def test_appends_events_in_order(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            log = ReservationEventLog(Path(temp_dir) / "events.yaml")
            log.log("FIRST", {"n": 1})
            log.log("SECOND", {"n": 2})

            events = log.events()

            self.assertEqual([event["event_type"] for event in events], ["FIRST", "SECOND"])
            self.assertEqual(events[1]["payload"], {"n": 2})


if __name__ == "__main__":
    unittest.main()
