import tempfile
import unittest
from pathlib import Path

from room_reservation import DEFAULT_ROOMS, Room, RoomDirectory, RoomNotFound, load_room_directory


class TestRoomDirectory(unittest.TestCase):
    def test_default_directory_keeps_declaration_order(self) -> None:
        directory = RoomDirectory()

        self.assertEqual(directory.all(), DEFAULT_ROOMS)
        self.assertEqual(directory.names(), ["large", "small", "booth"])
        self.assertEqual(len(directory), 3)

    def test_is_valid_and_describe(self) -> None:
        directory = RoomDirectory([Room("annex", "Annex room")])

        self.assertTrue(directory.is_valid("annex"))
        self.assertFalse(directory.is_valid("large"))
        self.assertEqual(directory.describe("annex"), "Annex room")
        with self.assertRaises(RoomNotFound):
            directory.describe("large")

    def test_rejects_duplicates_reserved_characters_and_empty(self) -> None:
        with self.assertRaises(ValueError):
            RoomDirectory([Room("a", "one"), Room("a", "two")])
        with self.assertRaises(ValueError):
            RoomDirectory([Room("a|b", "bad")])
        with self.assertRaises(ValueError):
            RoomDirectory([])


class TestLoadRoomDirectory(unittest.TestCase):
    def test_loads_rooms_from_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "rooms.yaml"
            path.write_text(
                "- name: north\n  description: North wing\n- name: south\n  description: South wing\n",
                encoding="utf-8",
            )

            directory = load_room_directory(path)

            self.assertEqual(directory.names(), ["north", "south"])
            self.assertEqual(directory.describe("south"), "South wing")

    def test_rejects_non_list_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "rooms.yaml"
            path.write_text("north: North wing\n", encoding="utf-8")

            with self.assertRaises(ValueError):
                load_room_directory(path)


if __name__ == "__main__":
    unittest.main()
