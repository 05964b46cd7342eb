from __future__ import annotations

import unittest
from pathlib import Path

from cardsheet import __version__
from cardsheet.contracts import CONTRACT_VERSIONS, build_contract, build_run_summary, wrap_payload


class ContractTests(unittest.TestCase):
    def test_every_contract_has_a_version(self):
        for name in ("cardsheet.inspect", "cardsheet.export_summary", "cardsheet.sheets"):
            self.assertEqual(build_contract(name), {"name": name, "version": CONTRACT_VERSIONS[name]})

    def test_unknown_contract_raises(self):
        with self.assertRaises(KeyError):
            build_contract("cardsheet.unknown")

    def test_run_summary_counts_warnings(self):
        summary = build_run_summary(
            command="export",
            input_path=Path("in.xlsx"),
            output_path=Path("out.csv"),
            metrics={"rows": 2},
            warnings=["one", "two"],
        )
        self.assertEqual(summary["tool"], "cardsheet")
        self.assertEqual(summary["status"], "ok")
        self.assertEqual(summary["output_file"], "out.csv")
        self.assertEqual(summary["warnings_count"], 2)
        self.assertRegex(summary["generated_at"], r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")

    def test_wrapped_payload_carries_contract_and_tool_version(self):
        summary = build_run_summary(command="sheets", input_path=Path("in.xlsx"))
        payload = wrap_payload("cardsheet.sheets", {"sheet_names": ["A"]}, summary)
        self.assertEqual(payload["contract"]["name"], "cardsheet.sheets")
        self.assertEqual(payload["schema_version"], payload["contract"]["version"])
        self.assertEqual(payload["tool_version"], __version__)
        self.assertEqual(payload["sheet_names"], ["A"])
        self.assertIsNone(payload["run_summary"]["output_file"])
        self.assertEqual(payload["run_summary"]["warnings"], [])


if __name__ == "__main__":
    unittest.main()
