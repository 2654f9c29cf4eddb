# orders_core/tests/test_api_orders.py

from django.contrib.auth.models import User
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from orders_core import models as lab
from orders_core.models import Order


class OrderApiTests(TestCase):
    """
    Order status machine, consistency and progress over HTTP.
    """

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="labtech", password="pass123")
        self.client.force_authenticate(user=self.user)

        self.order = Order.objects.create(patient_name="Okello John")

        self.group = lab.TestGroup.objects.create(code="LFT", name="Liver Function")
        self.analytes = [
            lab.Analyte.objects.create(name=name, unit="U/L", reference_range="7-56")
            for name in ("ALT", "AST", "ALP", "GGT")
        ]
        self.group.analytes.add(*self.analytes)
        lab.OrderTest.objects.create(order=self.order, test_group=self.group)

    def url(self, suffix=""):
        return f"/lab/orders/{self.order.pk}/{suffix}"

    # ==================================================
    # Detail / definition
    # ==================================================

    def test_detail_includes_consistency_and_allowed_actions(self):
        resp = self.client.get(self.url())

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        body = resp.json()
        self.assertEqual(body["order"]["status"], "Order Created")
        self.assertTrue(body["consistency"]["is_consistent"])
        self.assertEqual(body["allowed_actions"], ["mark_collected"])

    def test_unknown_order_is_404(self):
        resp = self.client.get("/lab/orders/999999/")

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.json()["code"], "not_found")

    def test_workflow_definition(self):
        resp = self.client.get("/lab/workflows/order/")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.json()["states"]), 7)
        self.assertTrue(resp.json()["actions"]["mark_not_collected"]["requires_collected_sample"])

    def test_health_is_public(self):
        resp = APIClient().get("/lab/health/")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json()["status"], "ok")

    def test_anonymous_requests_are_refused(self):
        resp = APIClient().get(self.url())
        self.assertIn(resp.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    # ==================================================
    # Transitions
    # ==================================================

    def test_mark_collected(self):
        resp = self.client.post(self.url("transition/"), {"action": "mark_collected"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        body = resp.json()
        self.assertEqual(body["transition"]["to_status"], "Sample Collected")
        self.assertEqual(body["order"]["sample_collected_by"], "labtech")
        self.assertIn("start_processing", body["allowed_actions"])
        self.assertIn("mark_not_collected", body["allowed_actions"])

    def test_refused_transition_is_400_and_writes_nothing(self):
        resp = self.client.post(self.url("transition/"), {"action": "deliver"}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()["code"], "invalid_transition")
        self.assertIn("Order Created", resp.json()["detail"])
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "Order Created")
        self.assertFalse(lab.WorkflowTransition.objects.exists())

    def test_missing_action_is_400(self):
        resp = self.client.post(self.url("transition/"), {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_transition_on_unknown_order_is_404(self):
        resp = self.client.post("/lab/orders/999999/transition/", {"action": "mark_collected"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    # ==================================================
    # Consistency
    # ==================================================

    def test_consistency_report_and_repair(self):
        Order.objects.filter(pk=self.order.pk).update(status="In Progress")

        report = self.client.get(self.url("consistency/")).json()
        self.assertFalse(report["is_consistent"])
        self.assertEqual(report["recommended_status"], "Pending Collection")

        # reading never repairs
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "In Progress")

        resp = self.client.post(self.url("consistency/repair/"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.json()["repair"]["changed"])
        self.assertEqual(resp.json()["order"]["status"], "Pending Collection")
        self.assertTrue(resp.json()["consistency"]["is_consistent"])

    # ==================================================
    # Results, progress and timeline
    # ==================================================

    def test_result_entry_then_progress(self):
        resp = self.client.post(
            self.url("results/"),
            {
                "test_group_id": self.group.pk,
                "values": [
                    {"analyte_id": self.analytes[0].pk, "value": "80"},
                    {"analyte_id": self.analytes[1].pk, "value": "30"},
                ],
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.json()["status"], "pending_verification")
        flags = {v["analyte"]: v["flag"] for v in resp.json()["values"]}
        self.assertEqual(flags[self.analytes[0].pk], "H")
        self.assertEqual(flags[self.analytes[1].pk], "")

        progress = self.client.get(self.url("progress/")).json()
        self.assertEqual(progress["method"], "panel")
        self.assertEqual(progress["expected_total"], 4)
        self.assertEqual(progress["counts"], {"draft": 2, "pending": 2, "approved": 0})
        self.assertEqual(progress["percent"], 0)

        by_analyte = self.client.get(self.url("progress/"), {"method": "analyte"}).json()
        self.assertEqual(by_analyte["counts"], progress["counts"])

    def test_progress_with_unknown_method_is_400(self):
        resp = self.client.get(self.url("progress/"), {"method": "guess"})

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()["allowed"], ["panel", "analyte"])

    def test_result_entry_for_panel_not_on_order_is_400(self):
        other = lab.TestGroup.objects.create(code="RFT", name="Renal Function")

        resp = self.client.post(
            self.url("results/"),
            {"test_group_id": other.pk, "values": [{"analyte_name": "Urea", "value": "5"}]},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()["code"], "validation_error")

    def test_timeline(self):
        self.client.post(self.url("transition/"), {"action": "mark_collected"}, format="json")
        self.client.post(self.url("transition/"), {"action": "start_processing", "comment": "bench 2"}, format="json")

        resp = self.client.get(self.url("timeline/"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        timeline = resp.json()["timeline"]
        self.assertEqual([t["action"] for t in timeline], ["mark_collected", "start_processing"])
        self.assertEqual(timeline[1]["comment"], "bench 2")
        self.assertEqual(timeline[1]["performed_by"], "labtech")
