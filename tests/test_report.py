import unittest

from scval.checked_contract import CheckedContract
from scval.ingest.models import PathContent
from scval.report import CheckReport, report_schema_id_and_version, validate_report
from scval.resolve.sources import MissingSource
from tests.metadata_fixtures import SOURCE_A, make_metadata, source_entry


class TestCheckReport(unittest.TestCase):
    def test_report_payload_matches_schema(self) -> None:
        metadata = make_metadata({"A.sol": source_entry(SOURCE_A)})
        contract = CheckedContract(metadata, {}, {"A.sol": MissingSource(keccak256=None)}, {})
        report = CheckReport(
            contracts=[contract],
            ignored=["nope.sol"],
            unused=[PathContent(path="x.txt", content="x", origin="bundle.zip")],
        )
        payload = report.to_dict()

        validate_report(payload)
        schema_id, version = report_schema_id_and_version()
        self.assertEqual(payload["schema_id"], schema_id)
        self.assertEqual(version, "1.0.0")
        self.assertFalse(payload["ok"])
        self.assertEqual(payload["unused"], [{"path": "x.txt", "origin": "bundle.zip"}])

    def test_non_string_identity_in_metadata_still_validates(self) -> None:
        metadata = make_metadata({"A.sol": source_entry(SOURCE_A)}, target={"A.sol": ["A"]})
        metadata["compiler"] = {"version": 6}
        contract = CheckedContract(
            metadata, {"A.sol": PathContent(path="A.sol", content=SOURCE_A)}, {}, {}
        )
        payload = CheckReport(contracts=[contract]).to_dict()

        validate_report(payload)
        self.assertTrue(payload["ok"])
        self.assertIsNone(payload["contracts"][0]["name"])
        self.assertIsNone(payload["contracts"][0]["compiler_version"])

    def test_invalid_payload_is_rejected(self) -> None:
        payload = CheckReport(contracts=[]).to_dict()
        payload["contracts"] = [{"name": "A"}]
        with self.assertRaises(ValueError):
            validate_report(payload)


if __name__ == "__main__":
    unittest.main()
