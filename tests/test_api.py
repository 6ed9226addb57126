# ========================
# tests/test_api.py
# ========================

import unittest
import tempfile
import shutil
import os
import sys
from datetime import datetime, timezone
from unittest import mock

from fastapi.testclient import TestClient

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import api_server
from api_server import app, dataset_state
from src.utils.config import Config
from src.reporting.dataset import OrderDataset
from src.reporting.ingestion import REQUIRED_FIELDS
from src.utils.data_generator import DataGenerator
from tests.factories import DAY_1, DAY_2, make_item


class TestAPIEndpoints(unittest.TestCase):
    """
    Tests for the API server endpoints.
    Datasets are published directly into the server state; no running server needed.
    """

    def setUp(self):
        self.client = TestClient(app)
        dataset = OrderDataset()
        dataset.add(make_item('A', 0, '100', ordered_at=DAY_1, category=['Electronics', 'Phones'],
                              delivered_at=DAY_2))
        dataset.add(make_item('A', 0, '50', ordered_at=DAY_1, category=['Electronics', 'Laptops']))
        dataset.add(make_item('B', 1, '20', refunded='20', ordered_at=DAY_2, category=['Books']))
        self.dataset = dataset

    def tearDown(self):
        dataset_state.clear()

    def publish(self):
        dataset_state.publish(self.dataset, 'test', {})

    def test_root_endpoint(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertIn("message", data)
        self.assertIn("endpoints", data)

    def test_health_endpoint(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")
        self.assertFalse(response.json()["dataset_loaded"])

        self.publish()
        self.assertTrue(self.client.get("/health").json()["dataset_loaded"])

    def test_queries_without_dataset(self):
        for path in ["/summary", "/categories", "/categories/Books", "/revenue/day"]:
            with self.subTest(path=path):
                self.assertEqual(self.client.get(path).status_code, 503)

    def test_summary(self):
        self.publish()
        data = self.client.get("/summary").json()
        self.assertEqual(data["num_orders"], 2)
        self.assertEqual(data["num_order_items"], 3)
        self.assertEqual(data["aov"], "85")
        self.assertEqual(data["total_revenue"], "150")
        self.assertAlmostEqual(data["return_rate"], 1 / 3)
        self.assertEqual(data["delivery_days"]["count"], 1)
        self.assertEqual(data["delivery_days"]["median"], 1.0)

    def test_summary_of_empty_dataset(self):
        dataset_state.publish(OrderDataset(), 'empty', {})
        self.assertEqual(self.client.get("/summary").status_code, 422)

    def test_categories(self):
        self.publish()
        data = self.client.get("/categories").json()
        names = [entry["category"] for entry in data["categories"]]
        self.assertEqual(names, ["Books", "Electronics", "Laptops", "Phones"])
        electronics = data["categories"][1]
        self.assertEqual(electronics["num_orders"], 1)
        self.assertEqual(electronics["num_items"], 2)

    def test_single_category(self):
        self.publish()
        response = self.client.get("/categories/Books")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["return_rate"], 1.0)

        self.assertEqual(self.client.get("/categories/Garden").status_code, 404)

    def test_revenue_by_day_defaults_to_date_range(self):
        self.publish()
        buckets = self.client.get("/revenue/day").json()["buckets"]
        self.assertEqual([b["revenue"] for b in buckets], ["150", "0"])
        self.assertEqual(buckets[0]["title"], "Day 2024-01-01")

    def test_revenue_by_week_with_explicit_range(self):
        self.publish()
        response = self.client.get("/revenue/week", params={
            "start": "2024-01-01T00:00:00Z",
            "end": "2024-01-20T00:00:00Z",
        })
        buckets = response.json()["buckets"]
        self.assertEqual(len(buckets), 3)
        self.assertEqual(buckets[0]["revenue"], "150")

    def test_revenue_by_interval(self):
        self.publish()
        response = self.client.get("/revenue/interval", params={"hours": 12})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["interval_hours"], 12)
        self.assertEqual(len(data["buckets"]), 3)

        self.assertEqual(self.client.get("/revenue/interval", params={"hours": 0}).status_code, 422)

    def test_upload_csv_file(self):
        """Uploading a generated export replaces the published dataset."""
        self.publish()
        content = DataGenerator(seed=11).generate_csv_text(
            250, start_date=datetime(2024, 5, 1, tzinfo=timezone.utc), days=14)

        response = self.client.post(
            "/upload",
            files={"file": ("orders.csv", content.encode("utf-8"), "text/csv")},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["status"], "loaded")
        self.assertEqual(data["num_order_items"], 250)

        self.assertIsNot(dataset_state.dataset, self.dataset)
        self.assertEqual(dataset_state.source, "orders.csv")

    def test_revenue_by_interval_out_of_range(self):
        """Intervals whose buckets end past the last representable date are a client error."""
        self.publish()
        for hours in (88_000_000, 10 ** 15):
            with self.subTest(hours=hours):
                response = self.client.get("/revenue/interval", params={"hours": hours})
                self.assertEqual(response.status_code, 422)

    def test_upload_oversized_field_is_bad_request(self):
        self.publish()
        header = ",".join(REQUIRED_FIELDS)
        row = '"' + "x" * 200_000 + '"' + "," * (len(REQUIRED_FIELDS) - 1)
        response = self.client.post(
            "/upload",
            files={"file": ("orders.csv", (header + "\n" + row + "\n").encode("utf-8"), "text/csv")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIs(dataset_state.dataset, self.dataset)

    def test_upload_rejects_non_csv(self):
        response = self.client.post(
            "/upload",
            files={"file": ("orders.txt", b"whatever", "text/plain")},
        )
        self.assertEqual(response.status_code, 400)

    def test_upload_missing_field_keeps_previous_dataset(self):
        self.publish()
        header = ",".join(field for field in REQUIRED_FIELDS if field != 'category')
        response = self.client.post(
            "/upload",
            files={"file": ("orders.csv", (header + "\n").encode("utf-8"), "text/csv")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("category", response.json()["detail"])
        self.assertIs(dataset_state.dataset, self.dataset)


class TestServerStartup(unittest.TestCase):

    def test_invalid_config_aborts_startup(self):
        temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, temp_dir, True)
        bad_config = Config({'CATEGORY_SEPARATOR': '', 'LOG_DIR': temp_dir, 'LOG_LEVEL': 'WARNING'})

        with mock.patch.object(api_server, 'config', bad_config), \
                mock.patch.object(api_server.uvicorn, 'run') as run:
            with self.assertRaises(SystemExit):
                api_server.start_server()
        run.assert_not_called()


if __name__ == '__main__':
    unittest.main()
