import unittest

from api_support import ApiTestCase

from keystone_app.checklists import get_checklist, progress_percent
from keystone_app.errors import ChecklistConflict
from keystone_app.storage import MemStorage
from keystone_app.templates import BUYER_CHECKLIST_TEMPLATE, SELLER_CHECKLIST_TEMPLATE


class ChecklistApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.register("agent@example.com")

    def test_sell_transaction_gets_the_seller_template(self):
        transaction = self.create_transaction(type="sell")

        checklist = self.client.get(f"/api/checklists/{transaction['id']}").get_json()

        self.assertEqual(checklist["role"], "sell")
        self.assertEqual(len(checklist["items"]), len(SELLER_CHECKLIST_TEMPLATE))
        first = checklist["items"][0]
        self.assertEqual(first["id"], "assess-value")
        self.assertEqual(first["phase"], "Pre-Listing Preparation")
        self.assertTrue(first["hint"])
        self.assertTrue(all(item["completed"] is False for item in checklist["items"]))
        self.assertEqual(checklist["progress"], 0)

    def test_buy_transaction_gets_the_buyer_template(self):
        transaction = self.create_transaction(type="buy")

        checklist = self.client.get(f"/api/checklists/{transaction['id']}").get_json()

        self.assertEqual(checklist["role"], "buy")
        self.assertEqual(len(checklist["items"]), len(BUYER_CHECKLIST_TEMPLATE))
        self.assertEqual(checklist["items"][0]["id"], "buying-criteria")

    def test_repeated_reads_return_the_same_checklist(self):
        transaction = self.create_transaction(type="sell")
        first = self.client.get(f"/api/checklists/{transaction['id']}").get_json()
        second = self.client.get(f"/api/checklists/{transaction['id']}").get_json()

        self.assertEqual(first["id"], second["id"])
        self.assertEqual(first["items"], second["items"])

    def test_toggle_one_item_leaves_the_rest_alone(self):
        transaction = self.create_transaction(type="sell")
        url = f"/api/checklists/{transaction['id']}"
        before = self.client.get(url).get_json()

        response = self.client.patch(f"{url}/assess-value", json={"completed": True})
        self.assertEqual(response.status_code, 200)

        after = self.client.get(url).get_json()
        changed = [
            (old["id"], new["completed"])
            for old, new in zip(before["items"], after["items"])
            if old["completed"] != new["completed"]
        ]
        self.assertEqual(changed, [("assess-value", True)])
        self.assertEqual(
            after["progress"], round(100 / len(SELLER_CHECKLIST_TEMPLATE))
        )

    def test_bulk_update(self):
        transaction = self.create_transaction(type="buy")
        url = f"/api/checklists/{transaction['id']}"

        response = self.client.patch(
            url,
            json={
                "items": [
                    {"id": "buying-criteria", "completed": True},
                    {"id": "hire-agent", "completed": True},
                ]
            },
        )
        completed = [i["id"] for i in response.get_json()["items"] if i["completed"]]
        self.assertEqual(completed, ["buying-criteria", "hire-agent"])

    def test_unknown_item_and_unknown_transaction(self):
        transaction = self.create_transaction()
        missing_item = self.client.patch(
            f"/api/checklists/{transaction['id']}/no-such-step", json={"completed": True}
        )
        self.assertEqual(missing_item.status_code, 404)

        missing_transaction = self.client.get("/api/checklists/9999")
        self.assertEqual(missing_transaction.status_code, 404)

    def test_completed_must_be_boolean(self):
        transaction = self.create_transaction()
        response = self.client.patch(
            f"/api/checklists/{transaction['id']}/hire-agent", json={}
        )
        self.assertEqual(response.status_code, 400)

    def test_outsider_cannot_read(self):
        transaction = self.create_transaction()
        outsider, _ = self.login_as("other@example.com")

        response = outsider.get(f"/api/checklists/{transaction['id']}")
        self.assertEqual(response.status_code, 403)


class RacingStorage(MemStorage):
    """Simulates another request creating the checklist between our read and write."""

    def __init__(self):
        super().__init__()
        self.race_once = True

    def create_checklist(self, transaction_id, role, items):
        if self.race_once:
            self.race_once = False
            super().create_checklist(transaction_id, role, items)
            raise ChecklistConflict()
        return super().create_checklist(transaction_id, role, items)


class ChecklistServiceTests(ApiTestCase):
    def make_storage(self):
        return RacingStorage()

    def test_losing_a_creation_race_returns_the_winner(self):
        with self.app.app_context():
            transaction = self.storage.create_transaction(
                {
                    "agent_id": 1,
                    "street_name": "1 Main St",
                    "city": "Austin",
                    "state": "TX",
                    "zip_code": "78701",
                    "access_code": "RACE0001",
                    "status": "prospect",
                    "type": "sell",
                }
            )
            checklist = get_checklist(self.storage, transaction.id)
            again = get_checklist(self.storage, transaction.id)

        self.assertEqual(checklist.id, again.id)
        self.assertEqual(checklist.items[0]["id"], "assess-value")

    def test_progress_of_an_empty_list_is_zero(self):
        self.assertEqual(progress_percent(0, 0), 0)
        self.assertEqual(progress_percent(1, 3), 33)
        self.assertEqual(progress_percent(2, 3), 67)

    def test_progress_rounds_halves_up(self):
        self.assertEqual(progress_percent(1, 8), 13)
        self.assertEqual(progress_percent(5, 8), 63)
        self.assertEqual(progress_percent(1, 200), 1)


if __name__ == "__main__":
    unittest.main()
