"""Regression tests for importing the data layer without the web stack."""

from __future__ import annotations

import importlib
import sys
import types
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class CLIImportTests(unittest.TestCase):
    def setUp(self) -> None:
        self._saved = {
            name: module
            for name, module in sys.modules.items()
            if name == "mobtrack" or name.startswith("mobtrack.")
        }

    def tearDown(self) -> None:
        self._clear_package_modules()
        sys.modules.update(self._saved)

    @staticmethod
    def _clear_package_modules() -> None:
        for name in [m for m in list(sys.modules.keys()) if m == "mobtrack" or m.startswith("mobtrack.")]:
            sys.modules.pop(name, None)

    def test_import_resources_without_fastapi(self) -> None:
        """Importing mobtrack.resources should succeed even if fastapi is missing."""

        self._clear_package_modules()

        fastapi_module: types.ModuleType | None = sys.modules.pop("fastapi", None)
        sys.modules["fastapi"] = None
        try:
            resources_module = importlib.import_module("mobtrack.resources")
            self.assertTrue(hasattr(resources_module, "ResourceStore"))

            package = sys.modules.get("mobtrack")
            self.assertIsNotNone(package)
            self.assertTrue(hasattr(package, "ResourceRecord"))
            self.assertNotIn("mobtrack.api", sys.modules)
        finally:
            sys.modules.pop("fastapi", None)
            if fastapi_module is not None:
                sys.modules["fastapi"] = fastapi_module


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
