import datetime
import unittest

from api_support import ApiTestCase

from keystone_app.calendar_feed import build_ical, ical_escape, vevent


class CalendarFeedTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.agent = self.register("agent@example.com")
        self.early = self.create_transaction(
            streetName="5 Birch Ln",
            closingDate="2025-09-30",
            optionPeriodExpiration="2025-09-10",
        )
        self.late = self.create_transaction(closingDate="2025-08-15")
        self.create_transaction(streetName="No Dates Rd")

    def test_events_are_sorted_by_date(self):
        events = self.client.get("/api/calendar/events").get_json()

        self.assertEqual(
            [event["id"] for event in events],
            [
                f"closing-{self.late['id']}",
                f"option-{self.early['id']}",
                f"closing-{self.early['id']}",
            ],
        )
        self.assertEqual(events[1]["start"], "2025-09-10")
        self.assertTrue(events[1]["allDay"])
        self.assertEqual(events[1]["title"], "Option Expiration - 5 Birch Ln, Austin, TX 78704")

    def test_export_download(self):
        response = self.client.get(f"/api/calendar/{self.agent['id']}/export")
        body = response.get_data(as_text=True)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, "text/calendar")
        self.assertTrue(response.headers["Content-Disposition"].startswith("attachment"))
        self.assertEqual(response.headers["Cache-Control"], "no-store")
        self.assertTrue(body.startswith("BEGIN:VCALENDAR\r\n"))
        self.assertEqual(body.count("BEGIN:VEVENT"), 3)
        self.assertIn("DTSTART;VALUE=DATE:20250815", body)
        self.assertIn("DTEND;VALUE=DATE:20250816", body)

    def test_subscription_with_key(self):
        token = self.agent["calendarToken"]
        anonymous = self.app.test_client()

        response = anonymous.get(f"/api/calendar/{self.agent['id']}/subscribe?key={token}")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["Content-Disposition"].startswith("inline"))
        self.assertIn("max-age", response.headers["Cache-Control"])

        wrong = anonymous.get(f"/api/calendar/{self.agent['id']}/subscribe?key=nope")
        self.assertEqual(wrong.status_code, 403)

    def test_non_ascii_key_is_refused(self):
        anonymous = self.app.test_client()

        response = anonymous.get(f"/api/calendar/{self.agent['id']}/export?key=%C3%A9")

        self.assertEqual(response.status_code, 403)
        self.assertIn("error", response.get_json())

    def test_access_rules(self):
        anonymous = self.app.test_client()
        self.assertEqual(anonymous.get(f"/api/calendar/{self.agent['id']}/export").status_code, 401)

        other, _ = self.login_as("other@example.com")
        self.assertEqual(other.get(f"/api/calendar/{self.agent['id']}/export").status_code, 403)

        self.assertEqual(
            self.client.get(f"/api/calendar/{self.agent['id']}/weekly").status_code, 404
        )


class IcalFormattingTests(unittest.TestCase):
    def test_escaping(self):
        self.assertEqual(
            ical_escape("Closing - 1 Main St, Austin; TX"),
            "Closing - 1 Main St\\, Austin\\; TX",
        )

    def test_all_day_event(self):
        event = {"id": "closing-7", "title": "Closing", "start": "2025-12-31"}
        stamp = datetime.datetime(2025, 1, 2, 3, 4, 5)

        text = vevent(event, host="example.test", stamp=stamp)

        self.assertIn("UID:closing-7@example.test", text)
        self.assertIn("DTSTAMP:20250102T030405Z", text)
        self.assertIn("DTEND;VALUE=DATE:20260101", text)

    def test_empty_calendar(self):
        body = build_ical([], calendar_name="Mine")
        self.assertIn("X-WR-CALNAME:Mine", body)
        self.assertNotIn("BEGIN:VEVENT", body)
        self.assertTrue(body.endswith("END:VCALENDAR\r\n"))


if __name__ == "__main__":
    unittest.main()
