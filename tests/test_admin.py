"""Tests for the admin blueprint."""

import unittest
from unittest.mock import MagicMock, patch

from mockfirestore import MockFirestore

from noteclub import create_app
from noteclub.admin.services import AdminService
from noteclub.errors import UserNotFoundError, UserNotInRotationError
from tests.conftest import patch_mockfirestore

MOCK_ADMIN_ID = "admin1"


class AdminRoutesTestCase(unittest.TestCase):
    """Test case for the admin turn controls."""

    def setUp(self):
        """Set up the test client and mocks."""
        self.mock_firestore_service = MagicMock()

        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "firestore_app": patch(
                "noteclub.firestore", new=self.mock_firestore_service
            ),
            "firestore_routes": patch(
                "noteclub.admin.routes.firestore", new=self.mock_firestore_service
            ),
            "turn_service": patch("noteclub.admin.routes.TurnService"),
            "admin_service": patch("noteclub.admin.routes.AdminService"),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False})
        self.client = self.app.test_client()
        self.db = self.mock_firestore_service.client.return_value

        user_snapshot = self.db.collection.return_value.document.return_value.get
        user_snapshot.return_value.exists = True
        user_snapshot.return_value.to_dict.return_value = {
            "name": "Admin",
            "isAdmin": True,
        }

    def _login(self, is_admin=True):
        with self.client.session_transaction() as sess:
            sess["user_id"] = MOCK_ADMIN_ID
            sess["is_admin"] = is_admin

    def test_non_admin_is_rejected(self):
        self._login(is_admin=False)
        response = self.client.post("/admin/groups/g1/turn/advance")
        self.assertEqual(response.status_code, 403)
        self.mocks["turn_service"].advance_turn.assert_not_called()

    def test_anonymous_is_rejected(self):
        response = self.client.post("/admin/groups/g1/turn/advance")
        self.assertEqual(response.status_code, 401)

    def test_advance_turn(self):
        self._login()
        self.mocks["turn_service"].advance_turn.return_value = {
            "previousIndex": 2,
            "newIndex": 0,
        }
        response = self.client.post("/admin/groups/g1/turn/advance")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["newIndex"], 0)
        self.mocks["turn_service"].advance_turn.assert_called_once_with(self.db, "g1")

    def test_set_turn(self):
        self._login()
        self.mocks["turn_service"].set_turn_to.return_value = {
            "newLastPosted": {"user": None, "index": 1}
        }
        response = self.client.post(
            "/admin/groups/g1/turn/set", json={"user_id": "u2"}
        )
        self.assertEqual(response.status_code, 200)
        self.mocks["turn_service"].set_turn_to.assert_called_once_with(
            self.db, "g1", "u2"
        )

    def test_set_turn_requires_user(self):
        self._login()
        response = self.client.post("/admin/groups/g1/turn/set", json={})
        self.assertEqual(response.status_code, 400)
        self.mocks["turn_service"].set_turn_to.assert_not_called()

    def test_set_turn_user_outside_rotation(self):
        self._login()
        self.mocks["turn_service"].set_turn_to.side_effect = UserNotInRotationError(
            "User is not in the turn order for this group."
        )
        response = self.client.post(
            "/admin/groups/g1/turn/set", json={"user_id": "outsider"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("not in the turn order", response.get_json()["error"])

    def test_set_turn_unknown_user(self):
        self._login()
        self.mocks["turn_service"].set_turn_to.side_effect = UserNotFoundError()
        response = self.client.post(
            "/admin/groups/g1/turn/set", json={"user_id": "nobody"}
        )
        self.assertEqual(response.status_code, 404)

    def test_rebuild_turn_order(self):
        self._login()
        self.mocks["turn_service"].rebuild_turn_order.return_value = {
            "turnOrder": [],
            "currentTurnIndex": 0,
            "dropped": ["ghost"],
        }
        response = self.client.post("/admin/groups/g1/turn/rebuild")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["dropped"], ["ghost"])

    def test_turn_state(self):
        self._login()
        self.mocks["turn_service"].describe_turn_order.return_value = [
            {"index": 0, "userId": "u1"}
        ]
        response = self.client.get("/admin/groups/g1/turn")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["slots"][0]["userId"], "u1")

    def test_update_group(self):
        self._login()
        self.mocks["turn_service"].update_group.return_value = {
            "groupId": "g1",
            "dropped": [],
        }
        response = self.client.patch(
            "/admin/groups/g1",
            json={"name": " New Name ", "is_private": False, "member_ids": ["u1", "u2"]},
        )
        self.assertEqual(response.status_code, 200)
        self.mocks["turn_service"].update_group.assert_called_once_with(
            self.db,
            "g1",
            name="New Name",
            is_private=False,
            member_ids=["u1", "u2"],
        )

    def test_update_group_name_only(self):
        self._login()
        self.mocks["turn_service"].update_group.return_value = {"groupId": "g1"}
        response = self.client.patch("/admin/groups/g1", json={"name": "Renamed"})
        self.assertEqual(response.status_code, 200)
        self.mocks["turn_service"].update_group.assert_called_once_with(
            self.db, "g1", name="Renamed", is_private=None, member_ids=None
        )

    def test_update_group_rejects_short_name(self):
        self._login()
        response = self.client.patch("/admin/groups/g1", json={"name": "  ab  "})
        self.assertEqual(response.status_code, 400)
        self.mocks["turn_service"].update_group.assert_not_called()

    def test_update_group_rejects_non_string_member_ids(self):
        self._login()
        response = self.client.patch("/admin/groups/g1", json={"member_ids": [1, 2]})
        self.assertEqual(response.status_code, 400)
        self.assertIn("member_ids", response.get_json()["error"])
        self.mocks["turn_service"].update_group.assert_not_called()

    def test_update_group_requires_admin(self):
        self._login(is_admin=False)
        response = self.client.patch("/admin/groups/g1", json={"name": "Renamed"})
        self.assertEqual(response.status_code, 403)

    def test_set_user_active(self):
        self._login()
        self.mocks["admin_service"].set_user_active.return_value = {
            "id": "u2",
            "isActive": False,
        }
        response = self.client.post("/admin/users/u2/active", json={"is_active": False})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["message"], "User deactivated successfully")
        self.mocks["admin_service"].set_user_active.assert_called_once_with(
            self.db, "u2", False
        )

    def test_set_user_active_requires_boolean(self):
        self._login()
        response = self.client.post("/admin/users/u2/active", json={"is_active": "no"})
        self.assertEqual(response.status_code, 400)
        self.mocks["admin_service"].set_user_active.assert_not_called()


class AdminServiceTestCase(unittest.TestCase):
    """Test case for AdminService."""

    def setUp(self):
        patch_mockfirestore()
        self.db = MockFirestore()
        self.db.collection("users").document("u1").set(
            {"name": "One", "isActive": True}
        )

    def test_set_user_active(self):
        user = AdminService.set_user_active(self.db, "u1", False)
        self.assertFalse(user["isActive"])
        stored = self.db.collection("users").document("u1").get().to_dict()
        self.assertFalse(stored["isActive"])

    def test_set_user_active_unknown_user(self):
        with self.assertRaises(UserNotFoundError):
            AdminService.set_user_active(self.db, "missing", True)


if __name__ == "__main__":
    unittest.main()
