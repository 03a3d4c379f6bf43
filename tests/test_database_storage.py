import unittest

from api_support import PASSWORD, ApiTestCase

from keystone_app.errors import ChecklistConflict, DocumentConflict
from keystone_app.storage import EXTENSION_KEY, DatabaseStorage


class DatabaseApiTestCase(ApiTestCase):
    """Same API, backed by Flask-SQLAlchemy on an in-memory SQLite database."""

    def make_storage(self):
        return None

    def make_config(self):
        config = super().make_config()
        config["KEYSTONE_STORAGE"] = "database"
        return config

    def setUp(self):
        super().setUp()
        self.storage = self.app.extensions[EXTENSION_KEY]


class DatabaseStorageTests(DatabaseApiTestCase):
    def setUp(self):
        super().setUp()
        self.agent = self.register("agent@example.com")

    def test_backend_is_the_database(self):
        self.assertIsInstance(self.storage, DatabaseStorage)
        self.assertEqual(self.client.get("/health").get_json()["storage"], "DatabaseStorage")

    def test_transaction_lifecycle(self):
        transaction = self.create_transaction(
            accessCode="DBFLOW01", closingDate="2025-06-15T23:30:00-05:00"
        )
        self.assertEqual(transaction["closingDate"], "2025-06-16T12:00:00.000Z")

        moved = self.client.patch(
            f"/api/transactions/{transaction['id']}/status", json={"status": "Live Listing"}
        ).get_json()
        self.assertEqual(moved["status"], "live_listing")

        buyer, buyer_user = self.login_as("buyer@example.com", role="client")
        buyer.post("/api/claim-transaction", json={"accessCode": "DBFLOW01"})
        buyer.post("/api/claim-transaction", json={"accessCode": "DBFLOW01"})

        participants = self.client.get(f"/api/transactions/{transaction['id']}").get_json()[
            "participants"
        ]
        self.assertEqual(
            participants,
            [
                {"userId": self.agent["id"], "role": "agent"},
                {"userId": buyer_user["id"], "role": "client"},
            ],
        )
        self.assertEqual(
            [t["id"] for t in buyer.get("/api/transactions").get_json()], [transaction["id"]]
        )

    def test_checklist_and_documents_persist(self):
        transaction = self.create_transaction(type="sell")
        url = f"/api/checklists/{transaction['id']}"

        self.client.patch(f"{url}/assess-value", json={"completed": True})
        checklist = self.client.get(url).get_json()
        self.assertTrue(checklist["items"][0]["completed"])

        docs_url = f"/api/documents/{transaction['id']}"
        self.assertEqual(len(self.client.get(docs_url).get_json()), 9)
        self.client.patch(f"{docs_url}/iabs", json={"status": "complete"})
        board = self.client.get(f"{docs_url}/board").get_json()
        self.assertEqual(board["progress"], round(100 / 9))

    def test_unique_checklist_per_transaction_and_role(self):
        transaction = self.create_transaction()
        with self.app.app_context():
            first = self.storage.create_checklist(transaction["id"], "buy", [])
            with self.assertRaises(ChecklistConflict):
                self.storage.create_checklist(transaction["id"], "buy", [])
            self.assertEqual(self.storage.get_checklist(transaction["id"], "buy").id, first.id)

    def test_document_codes_are_unique_per_transaction(self):
        transaction = self.create_transaction()
        row = {"code": "iabs", "name": "IABS", "status": "not_applicable"}
        with self.app.app_context():
            self.storage.create_documents(transaction["id"], [row])
            with self.assertRaises(DocumentConflict):
                self.storage.create_documents(transaction["id"], [row])
            codes = [doc.code for doc in self.storage.list_documents([transaction["id"]])]
        self.assertEqual(codes, ["iabs"])

        docs = self.client.post(f"/api/documents/{transaction['id']}/initialize").get_json()
        self.assertEqual(len(docs), 9)

    def test_import_is_all_or_nothing(self):
        response = self.client.post(
            "/api/clients/import",
            json={"csvData": "First Name,Last Name\nAna,Lopez\nBen,\n"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.client.get("/api/clients").get_json(), [])

    def test_deleting_a_client_unlinks_transactions_and_contacts(self):
        client = self.client.post(
            "/api/clients",
            json={"firstName": "Dana", "lastName": "Lee", "email": "dana@example.com"},
        ).get_json()
        transaction = self.create_transaction(clientId=client["id"])
        contact = self.client.post(
            f"/api/contacts/{transaction['id']}",
            json={
                "role": "Buyer",
                "firstName": "Dana",
                "lastName": "Lee",
                "resolution": "existing",
                "clientId": client["id"],
            },
        ).get_json()

        self.assertEqual(self.client.delete(f"/api/clients/{client['id']}").status_code, 204)

        refreshed = self.client.get(f"/api/transactions/{transaction['id']}").get_json()
        self.assertIsNone(refreshed["clientId"])
        contacts = self.client.get(f"/api/contacts/{transaction['id']}").get_json()
        self.assertEqual([c["id"] for c in contacts], [contact["id"]])
        self.assertIsNone(contacts[0]["clientId"])

    def test_deleting_a_transaction_cascades(self):
        transaction = self.create_transaction(accessCode="DBCASCADE")
        tid = transaction["id"]
        buyer, _ = self.login_as("buyer@example.com", role="client")
        buyer.post("/api/claim-transaction", json={"accessCode": "DBCASCADE"})
        self.client.get(f"/api/checklists/{tid}")
        self.client.get(f"/api/documents/{tid}")
        self.client.post(f"/api/messages/{tid}", json={"content": "hello"})

        self.assertEqual(self.client.delete(f"/api/transactions/{tid}").status_code, 204)

        with self.app.app_context():
            self.assertIsNone(self.storage.get_transaction(tid))
            self.assertEqual(self.storage.list_documents([tid]), [])
            self.assertEqual(self.storage.list_messages(tid), [])
            self.assertIsNone(self.storage.get_checklist(tid, "buy"))
        self.assertIsNone(buyer.get("/api/user").get_json()["claimedTransactionId"])

    def test_private_messages(self):
        self.create_transaction(accessCode="DBINBOX1")
        buyer, buyer_user = self.login_as("buyer@example.com", role="client")
        buyer.post("/api/claim-transaction", json={"accessCode": "DBINBOX1"})

        sent = self.client.post(
            "/api/messages", json={"recipientId": buyer_user["id"], "content": "Welcome"}
        ).get_json()
        read = buyer.patch(f"/api/messages/{sent['id']}/read").get_json()

        self.assertTrue(read["read"])
        self.assertEqual([m["id"] for m in buyer.get("/api/messages").get_json()], [sent["id"]])

    def test_session_rotation(self):
        other_browser = self.app.test_client()
        other_browser.post(
            "/api/login", json={"email": "agent@example.com", "password": PASSWORD}
        )
        self.assertEqual(self.client.get("/api/user").status_code, 401)


if __name__ == "__main__":
    unittest.main()
