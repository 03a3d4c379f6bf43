import unittest
from types import SimpleNamespace

from api_support import ApiTestCase

from keystone_app.contacts import find_duplicate


def _client(**fields):
    defaults = {"first_name": "Dana", "last_name": "Lee", "email": None, "phone": None}
    defaults.update(fields)
    return SimpleNamespace(**defaults)


class FindDuplicateTests(unittest.TestCase):
    def test_name_and_email_match(self):
        known = _client(email="dana@example.com")
        candidate = {"first_name": "dana", "last_name": "LEE", "email": "Dana@Example.com"}
        self.assertIs(find_duplicate([known], candidate), known)

    def test_phone_or_mobile_match(self):
        known = _client(phone="512-555-0100")
        self.assertIs(
            find_duplicate(
                [known],
                {"first_name": "Dana", "last_name": "Lee", "mobile_phone": "512-555-0100"},
            ),
            known,
        )

    def test_name_alone_is_not_enough(self):
        known = _client(email="dana@example.com")
        self.assertIsNone(find_duplicate([known], {"first_name": "Dana", "last_name": "Lee"}))
        self.assertIsNone(
            find_duplicate(
                [known],
                {"first_name": "Dan", "last_name": "Lee", "email": "dana@example.com"},
            )
        )

    def test_blank_values_never_match(self):
        known = _client(email="", phone="")
        candidate = {"first_name": "Dana", "last_name": "Lee", "email": "", "phone": "  "}
        self.assertIsNone(find_duplicate([known], candidate))


class ContactApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.register("agent@example.com")
        self.known = self.client.post(
            "/api/clients",
            json={
                "firstName": "Dana",
                "lastName": "Lee",
                "email": "dana@example.com",
                "phone": "512-555-0100",
            },
        ).get_json()
        self.transaction = self.create_transaction()
        self.url = f"/api/contacts/{self.transaction['id']}"
        self.candidate = {
            "role": "lender",
            "firstName": "Dana",
            "lastName": "Lee",
            "email": "DANA@example.com",
            "mobilePhone": "512-555-0199",
        }

    def test_check_endpoint(self):
        found = self.client.post(f"{self.url}/check", json=self.candidate).get_json()
        self.assertEqual(found["duplicate"]["id"], self.known["id"])

        other = dict(self.candidate, email="someone@example.com")
        self.assertIsNone(self.client.post(f"{self.url}/check", json=other).get_json()["duplicate"])

    def test_duplicate_is_refused_with_the_match(self):
        response = self.client.post(self.url, json=self.candidate)
        body = response.get_json()

        self.assertEqual(response.status_code, 409)
        self.assertEqual(body["duplicate"]["id"], self.known["id"])
        self.assertEqual(self.client.get(self.url).get_json(), [])

    def test_resolve_as_new(self):
        response = self.client.post(self.url, json=dict(self.candidate, resolution="new"))
        contact = response.get_json()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(contact["role"], "Lender")
        self.assertEqual(contact["email"], "dana@example.com")
        self.assertEqual(contact["mobilePhone"], "512-555-0199")
        self.assertIsNone(contact["clientId"])

    def test_resolve_as_existing_copies_the_client(self):
        response = self.client.post(
            self.url,
            json=dict(
                self.candidate,
                firstName="D.",
                resolution="existing",
                clientId=self.known["id"],
            ),
        )
        contact = response.get_json()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(contact["firstName"], "Dana")
        self.assertEqual(contact["phone"], "512-555-0100")
        self.assertEqual(contact["clientId"], self.known["id"])
        self.assertEqual(contact["role"], "Lender")

    def test_existing_needs_only_the_client_and_role(self):
        response = self.client.post(
            self.url,
            json={"role": "Buyer", "resolution": "existing", "clientId": self.known["id"]},
        )
        contact = response.get_json()

        self.assertEqual(response.status_code, 201)
        self.assertEqual((contact["firstName"], contact["lastName"]), ("Dana", "Lee"))
        self.assertEqual(contact["role"], "Buyer")

    def test_names_required_for_new_contacts(self):
        response = self.client.post(
            self.url, json={"role": "Lender", "lastName": "Lee", "resolution": "new"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("firstName", response.get_json()["details"][0]["message"])

    def test_existing_requires_a_client_id(self):
        response = self.client.post(self.url, json=dict(self.candidate, resolution="existing"))
        self.assertEqual(response.status_code, 400)

    def test_transaction_id_in_body(self):
        response = self.client.post(
            "/api/contacts",
            json=dict(self.candidate, resolution="new", transactionId=self.transaction["id"]),
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["transactionId"], self.transaction["id"])

        missing = self.client.post("/api/contacts", json=dict(self.candidate, resolution="new"))
        self.assertEqual(missing.status_code, 400)

    def test_contacts_across_transactions(self):
        self.client.post(self.url, json=dict(self.candidate, resolution="new"))
        other = self.create_transaction(streetName="7 Cedar Ct")
        self.client.post(
            f"/api/contacts/{other['id']}",
            json={"role": "Home Inspector", "firstName": "Ian", "lastName": "Ward"},
        )

        rows = self.client.get("/api/contacts").get_json()

        self.assertEqual([row["lastName"] for row in rows], ["Lee", "Ward"])
        self.assertTrue(rows[1]["transactionAddress"].startswith("7 Cedar Ct"))

    def test_update_and_delete(self):
        contact = self.client.post(
            self.url, json=dict(self.candidate, resolution="new")
        ).get_json()
        contact_url = f"{self.url}/{contact['id']}"

        updated = self.client.patch(
            contact_url, json={"role": "escrow officer", "phone": "512-555-0111"}
        )
        self.assertEqual(updated.get_json()["role"], "Escrow Officer")
        self.assertEqual(updated.get_json()["phone"], "512-555-0111")

        self.assertEqual(self.client.patch(contact_url, json={"firstName": ""}).status_code, 400)

        self.assertEqual(self.client.delete(contact_url).status_code, 204)
        self.assertEqual(self.client.delete(contact_url).status_code, 404)

    def test_unknown_role(self):
        response = self.client.post(
            self.url, json=dict(self.candidate, role="Plumber", resolution="new")
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["details"][0]["field"], "role")

    def test_participants_read_but_do_not_write(self):
        transaction = self.create_transaction(accessCode="CONTACT1")
        buyer, _ = self.login_as("buyer@example.com", role="client")
        buyer.post("/api/claim-transaction", json={"accessCode": "CONTACT1"})
        url = f"/api/contacts/{transaction['id']}"

        self.assertEqual(buyer.get(url).status_code, 200)
        self.assertEqual(
            buyer.post(url, json=dict(self.candidate, resolution="new")).status_code, 403
        )


if __name__ == "__main__":
    unittest.main()
