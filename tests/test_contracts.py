import unittest
from datetime import datetime

from convo_ingest import __version__
from convo_ingest.contracts import CONTRACT_VERSIONS, build_contract, build_run_summary
from convo_ingest.models import (
    ColumnMapping,
    Conversation,
    ConversationMetadata,
    ConversationStatus,
    DataQuality,
    ProcessError,
    ProcessResult,
    ProcessSummary,
)


class ContractTests(unittest.TestCase):
    def test_build_contract_uses_registered_version(self):
        contract = build_contract("convo_ingest.process_result")

        self.assertEqual(contract, {"name": "convo_ingest.process_result", "version": CONTRACT_VERSIONS["convo_ingest.process_result"]})

    def test_unknown_contract_is_rejected(self):
        with self.assertRaises(KeyError):
            build_contract("convo_ingest.nope")

    def test_run_summary_shape(self):
        summary = build_run_summary(
            step="process_file",
            input_name="chats.xlsx",
            status="partial",
            metrics={"total_rows": 4},
            warnings=["Skipped 1 blank row(s)"],
        )

        self.assertEqual(summary["tool"], "convo-ingest")
        self.assertEqual(summary["tool_version"], __version__)
        self.assertEqual(summary["status"], "partial")
        self.assertEqual(summary["warnings_count"], 1)
        self.assertEqual(summary["metrics"], {"total_rows": 4})
        self.assertTrue(summary["generated_at"].endswith("Z"))

    def test_process_result_payload_reports_partial_runs(self):
        conversation = Conversation(
            customer_name="Ana",
            customer_phone="+525512345678",
            start_date=datetime(2024, 3, 15),
            status=ConversationStatus.ACTIVE,
            metadata=ConversationMetadata(source="Excel Import", data_quality=DataQuality(has_real_name=True)),
        )
        result = ProcessResult(
            conversations=[conversation],
            total_processed=2,
            errors=[ProcessError(row=3, column="general", message="boom")],
            summary=ProcessSummary(total_rows=2, successful_rows=1, error_rows=1, processing_time=1.5),
            mapping=ColumnMapping({"customer_name": 0}),
        )

        payload = result.to_dict("chats.csv")

        self.assertEqual(payload["run_summary"]["status"], "partial")
        self.assertEqual(payload["run_summary"]["metrics"]["error_rows"], 1)
        self.assertEqual(payload["mapping"], {"customer_name": 0})
        self.assertEqual(payload["conversations"][0]["start_date"], "2024-03-15T00:00:00")
        self.assertTrue(payload["conversations"][0]["metadata"]["incomplete_data"])


class ModelTests(unittest.TestCase):
    def test_status_must_be_enum(self):
        with self.assertRaises(TypeError):
            Conversation(customer_name="Ana", customer_phone="+52", start_date=datetime.now(), status="active")

    def test_tags_are_deduplicated_in_order(self):
        conversation = Conversation(
            customer_name="Ana",
            customer_phone="+52",
            start_date=datetime.now(),
            tags=["vip", "error_import", "vip"],
        )

        self.assertEqual(conversation.tags, ["vip", "error_import"])

    def test_completeness_score(self):
        quality = DataQuality(has_real_name=True, has_real_phone=True, has_real_date=True, has_real_status=True)

        self.assertEqual(quality.completeness_score, 0.57)
        self.assertFalse(ConversationMetadata(source="x", data_quality=quality).incomplete_data)


if __name__ == "__main__":
    unittest.main()
