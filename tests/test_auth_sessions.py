import unittest

from api_support import PASSWORD, ApiTestCase


class AuthSessionTests(ApiTestCase):
    def test_register_logs_the_user_in(self):
        user = self.register("agent@example.com")

        self.assertEqual(user["role"], "agent")
        self.assertIn("calendarToken", user)
        self.assertNotIn("password", user)

        response = self.client.get("/api/user")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["email"], "agent@example.com")

    def test_role_defaults_to_client(self):
        response = self.client.post(
            "/api/register",
            json={
                "email": "buyer@example.com",
                "password": PASSWORD,
                "firstName": "Bea",
                "lastName": "Buyer",
            },
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["role"], "client")

    def test_duplicate_email_is_rejected(self):
        self.register("agent@example.com")
        response = self.app.test_client().post(
            "/api/register",
            json={
                "email": "Agent@Example.com",
                "password": PASSWORD,
                "firstName": "Other",
                "lastName": "Person",
            },
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["details"][0]["field"], "email")

    def test_short_password_is_a_validation_failure(self):
        response = self.client.post(
            "/api/register",
            json={
                "email": "x@example.com",
                "password": "short",
                "firstName": "X",
                "lastName": "Y",
            },
        )
        body = response.get_json()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(body["error"], "Validation failed")
        self.assertEqual(body["details"][0]["field"], "password")

    def test_login_and_logout(self):
        self.register("agent@example.com")
        self.client.post("/api/logout")
        self.assertEqual(self.client.get("/api/user").status_code, 401)

        bad = self.client.post(
            "/api/login", json={"email": "agent@example.com", "password": "wrong-password"}
        )
        self.assertEqual(bad.status_code, 401)

        good = self.client.post(
            "/api/login", json={"email": "agent@example.com", "password": PASSWORD}
        )
        self.assertEqual(good.status_code, 200)
        self.assertEqual(self.client.get("/api/user").status_code, 200)

    def test_new_login_revokes_older_sessions(self):
        self.register("agent@example.com")
        other_browser = self.app.test_client()
        other_browser.post(
            "/api/login", json={"email": "agent@example.com", "password": PASSWORD}
        )

        self.assertEqual(other_browser.get("/api/user").status_code, 200)
        self.assertEqual(self.client.get("/api/user").status_code, 401)

    def test_deactivated_user_cannot_log_in(self):
        user = self.register("agent@example.com")
        self.client.post("/api/logout")
        self.storage.update_user(user["id"], {"active": False})

        response = self.client.post(
            "/api/login", json={"email": "agent@example.com", "password": PASSWORD}
        )
        self.assertEqual(response.status_code, 403)

    def test_unauthenticated_api_calls_get_json_401(self):
        response = self.client.get("/api/transactions")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json(), {"error": "Authentication required"})

    def test_unknown_route_returns_json_404(self):
        response = self.client.get("/api/nothing-here")
        self.assertEqual(response.status_code, 404)
        self.assertIn("error", response.get_json())

    def test_csrf_token_and_health(self):
        self.assertIn("csrfToken", self.client.get("/api/csrf-token").get_json())
        health = self.client.get("/health").get_json()
        self.assertEqual(health["status"], "ok")
        self.assertEqual(health["storage"], "MemStorage")


class CsrfEnforcementTests(ApiTestCase):
    def make_config(self):
        config = super().make_config()
        config["WTF_CSRF_ENABLED"] = True
        return config

    def test_post_without_token_is_rejected_as_json(self):
        response = self.client.post(
            "/api/login", json={"email": "a@example.com", "password": PASSWORD}
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.get_json())


if __name__ == "__main__":
    unittest.main()
