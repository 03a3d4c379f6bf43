import unittest

from api_support import ApiTestCase

from keystone_app.documents import document_board, document_progress
from keystone_app.errors import DocumentConflict
from keystone_app.storage import MemStorage
from keystone_app.templates import DEFAULT_DOCUMENTS


class DocumentTrackerTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.register("agent@example.com")
        self.transaction = self.create_transaction()
        self.url = f"/api/documents/{self.transaction['id']}"

    def _status_of(self, code):
        documents = self.client.get(self.url).get_json()
        return next(doc["status"] for doc in documents if doc["code"] == code)

    def test_first_read_seeds_the_nine_defaults(self):
        documents = self.client.get(self.url).get_json()

        self.assertEqual(len(documents), 9)
        self.assertEqual(
            [(doc["code"], doc["name"]) for doc in documents], DEFAULT_DOCUMENTS
        )
        self.assertTrue(all(doc["status"] == "not_applicable" for doc in documents))
        self.assertEqual(len(self.client.get(self.url).get_json()), 9)

    def test_moving_a_document_to_a_column(self):
        self.client.get(self.url)

        response = self.client.patch(f"{self.url}/iabs", json={"status": "Signed"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["status"], "signed")
        self.assertEqual(self._status_of("iabs"), "signed")

    def test_invalid_status_leaves_the_document_unchanged(self):
        self.client.get(self.url)
        self.client.patch(f"{self.url}/iabs", json={"status": "waiting_signatures"})

        response = self.client.patch(f"{self.url}/iabs", json={"status": "lost"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._status_of("iabs"), "waiting_signatures")

    def test_progress_counts_complete_documents(self):
        documents = self.client.get(self.url).get_json()
        for doc in documents[:3]:
            self.client.patch(f"{self.url}/{doc['id']}", json={"status": "complete"})

        board = self.client.get(f"{self.url}/board").get_json()

        self.assertEqual(board["progress"], round(100 * 3 / 9))
        complete = next(col for col in board["columns"] if col["id"] == "complete")
        self.assertEqual(len(complete["documents"]), 3)
        self.assertEqual(
            [col["id"] for col in board["columns"]],
            ["not_applicable", "waiting_signatures", "signed", "waiting_others", "complete"],
        )

    def test_add_edit_and_remove(self):
        self.client.get(self.url)
        created = self.client.post(
            self.url,
            json={"name": "Survey Affidavit", "deadline": "2025-03-01", "deadlineTime": "17:00"},
        )
        self.assertEqual(created.status_code, 201)
        document = created.get_json()
        self.assertEqual(document["code"], "survey_affidavit")
        self.assertEqual(document["status"], "not_applicable")
        self.assertEqual(document["deadline"], "2025-03-01")

        edited = self.client.patch(
            f"{self.url}/{document['id']}", json={"notes": "Seller to sign", "status": "signed"}
        ).get_json()
        self.assertEqual(edited["notes"], "Seller to sign")
        self.assertEqual(edited["status"], "signed")

        removed = self.client.delete(f"{self.url}/survey_affidavit")
        self.assertEqual(removed.status_code, 204)
        self.assertEqual(len(self.client.get(self.url).get_json()), 9)

    def test_bad_deadline_time(self):
        response = self.client.post(self.url, json={"name": "Addendum", "deadlineTime": "5pm"})
        self.assertEqual(response.status_code, 400)

    def test_initialize_is_idempotent(self):
        first = self.client.post(f"{self.url}/initialize").get_json()
        second = self.client.post(f"{self.url}/initialize").get_json()

        self.assertEqual(len(first), 9)
        self.assertEqual([doc["id"] for doc in first], [doc["id"] for doc in second])

    def test_deleting_every_document_reseeds_on_next_read(self):
        documents = self.client.get(self.url).get_json()
        for doc in documents:
            self.client.delete(f"{self.url}/{doc['id']}")

        self.assertEqual(len(self.client.get(self.url).get_json()), 9)

    def test_board_progress_rounds_halves_up(self):
        documents = self.client.get(self.url).get_json()
        self.client.delete(f"{self.url}/{documents[-1]['id']}")
        self.client.patch(f"{self.url}/iabs", json={"status": "complete"})

        board = self.client.get(f"{self.url}/board").get_json()

        self.assertEqual(board["progress"], 13)

    def test_progress_of_no_documents_is_zero(self):
        self.assertEqual(document_progress([]), 0)
        self.assertEqual(document_board([])["progress"], 0)

    def test_unknown_document_and_foreign_transaction(self):
        self.client.get(self.url)
        self.assertEqual(
            self.client.patch(f"{self.url}/nope", json={"status": "signed"}).status_code, 404
        )

        outsider, _ = self.login_as("other@example.com")
        self.assertEqual(outsider.get(self.url).status_code, 403)

    def test_agent_wide_document_list(self):
        self.client.get(self.url)
        rows = self.client.get("/api/documents").get_json()

        self.assertEqual(len(rows), 9)
        self.assertTrue(rows[0]["transactionAddress"].startswith("412 Live Oak St"))


class RacingDocumentStorage(MemStorage):
    """Simulates another request seeding the defaults between our read and write."""

    def __init__(self):
        super().__init__()
        self.race_once = True

    def create_documents(self, transaction_id, rows):
        if self.race_once:
            self.race_once = False
            super().create_documents(transaction_id, rows)
            raise DocumentConflict()
        return super().create_documents(transaction_id, rows)


class DocumentSeedingRaceTests(ApiTestCase):
    def make_storage(self):
        return RacingDocumentStorage()

    def test_losing_the_seeding_race_returns_the_winners_documents(self):
        self.register("agent@example.com")
        transaction = self.create_transaction()
        url = f"/api/documents/{transaction['id']}"

        response = self.client.get(url)
        documents = response.get_json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual([doc["code"] for doc in documents], [code for code, _ in DEFAULT_DOCUMENTS])
        self.assertEqual(len(self.client.get(url).get_json()), 9)

    def test_memory_store_refuses_a_taken_code(self):
        with self.assertRaises(DocumentConflict):
            self.storage.create_documents(
                1, [{"code": "iabs", "name": "IABS"}, {"code": "iabs", "name": "IABS"}]
            )


if __name__ == "__main__":
    unittest.main()
