import importlib.util
import json
import tempfile
import unittest
from pathlib import Path

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "seed_sites.py"


def load_script():
    spec = importlib.util.spec_from_file_location("seed_sites", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class SeedSitesTests(unittest.TestCase):
    def setUp(self):
        self.seed_sites = load_script()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def write(self, payload) -> Path:
        path = Path(self.tmpdir.name) / "sites.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_load_sites(self):
        path = self.write(
            [
                {
                    "name": "Tower B",
                    "email": "Owner@example.com",
                    "phone": "555-0100",
                    "materials": {"bricks": {"stock": 500, "price": 0.4}},
                    "location": {"type": "Point", "coordinates": [72.8777, 19.076]},
                }
            ]
        )
        sites = self.seed_sites.load_sites(path)
        self.assertEqual(len(sites), 1)
        self.assertEqual(sites[0].email, "owner@example.com")
        self.assertEqual(sites[0].longitude, 72.8777)
        self.assertEqual(sites[0].materials["bricks"], {"stock": 500, "price": 0.4})

    def test_invalid_entry_names_its_index(self):
        path = self.write([{"name": "No location"}])
        with self.assertRaises(ValueError) as ctx:
            self.seed_sites.load_sites(path)
        self.assertIn("#0", str(ctx.exception))

    def test_requires_list(self):
        with self.assertRaises(ValueError):
            self.seed_sites.load_sites(self.write({"name": "x"}))


if __name__ == "__main__":
    unittest.main()
