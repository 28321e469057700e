import random
import unittest
from datetime import datetime, timedelta
from unittest import mock

from convo_ingest import row_parser
from convo_ingest.column_mapper import detect_column_mapping
from convo_ingest.config import IngestSettings
from convo_ingest.models import ColumnMapping, ConversationStatus
from convo_ingest.row_parser import (
    ERROR_TAG,
    NO_MESSAGE_PLACEHOLDER,
    RECOVERED_MESSAGE_PLACEHOLDER,
    build_fallback_conversation,
    parse_conversation_row,
)

HEADERS = ["Cliente", "Teléfono", "Fecha", "Estado", "Mensajes", "Último Mensaje", "Agente"]


class Exploding:
    def __str__(self):
        raise ValueError("cell cannot be rendered")


class RowParserTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.mapping = detect_column_mapping(HEADERS)

    def test_complete_row_uses_mapped_cells(self):
        row = [
            "Ana López", "55 1234-5678", "15/03/2024", "Completado", "12",
            "Gracias, quedo atenta al envío", "Carlos",
        ]

        conversation = parse_conversation_row(row, self.mapping, 2)

        self.assertEqual(conversation.customer_name, "Ana López")
        self.assertEqual(conversation.customer_phone, "+525512345678")
        self.assertEqual(conversation.start_date, datetime(2024, 3, 15))
        self.assertIs(conversation.status, ConversationStatus.COMPLETED)
        self.assertEqual(conversation.total_messages, 12)
        self.assertEqual(conversation.last_message, "Gracias, quedo atenta al envío")
        self.assertEqual(conversation.assigned_agent, "Carlos")
        self.assertEqual(conversation.tags, [])
        self.assertEqual(conversation.metadata.source, "Excel Import")
        self.assertEqual(conversation.metadata.original_row_number, 2)
        self.assertEqual(conversation.metadata.data_quality.completeness_score, 1.0)
        self.assertFalse(conversation.metadata.incomplete_data)
        self.assertIsNone(conversation.metadata.satisfaction)
        self.assertIsNone(conversation.metadata.total_purchase_value)

    def test_empty_row_gets_placeholders(self):
        before = datetime.now()

        conversation = parse_conversation_row([""] * len(HEADERS), self.mapping, 5)

        self.assertEqual(conversation.customer_name, "Cliente Sin Nombre #5")
        self.assertTrue(conversation.customer_phone.startswith("+52"))
        self.assertEqual(len(conversation.customer_phone), 13)
        self.assertLessEqual(before - timedelta(seconds=1), conversation.start_date)
        self.assertIs(conversation.status, ConversationStatus.PENDING)
        self.assertEqual(conversation.total_messages, 1)
        self.assertEqual(conversation.last_message, NO_MESSAGE_PLACEHOLDER)
        self.assertIsNone(conversation.assigned_agent)
        self.assertEqual(conversation.metadata.data_quality.completeness_score, 0.0)
        self.assertTrue(conversation.metadata.incomplete_data)

    def test_short_row_is_padded_with_defaults(self):
        conversation = parse_conversation_row(["Ana"], self.mapping, 3)

        self.assertEqual(conversation.customer_name, "Ana")
        self.assertIs(conversation.status, ConversationStatus.PENDING)
        self.assertFalse(conversation.metadata.data_quality.has_real_phone)

    def test_unmapped_row_is_scanned_by_shape(self):
        row = [
            "Pedro", "Hola, quisiera información del plan", "+52 55 9876 5432",
            "2024-05-01", "finalizado", "7", "4", "1500",
        ]

        conversation = parse_conversation_row(row, ColumnMapping({}), 2)

        self.assertEqual(conversation.customer_name, "Pedro")
        self.assertEqual(conversation.customer_phone, "+525598765432")
        self.assertEqual(conversation.start_date, datetime(2024, 5, 1))
        self.assertIs(conversation.status, ConversationStatus.COMPLETED)
        self.assertEqual(conversation.total_messages, 7)
        self.assertEqual(conversation.last_message, "Hola, quisiera información del plan")
        self.assertEqual(conversation.metadata.satisfaction, 4.0)
        self.assertEqual(conversation.metadata.total_purchase_value, 1500.0)
        self.assertEqual(conversation.metadata.data_quality.completeness_score, 0.86)

    def test_numeric_text_is_never_taken_as_a_name(self):
        mapping = ColumnMapping({"customer_name": 0, "customer_phone": 1, "start_date": 2})

        for amount in ("150.50", "-4.5", "$1,200"):
            with self.subTest(amount=amount):
                conversation = parse_conversation_row(
                    ["", "5512345678", "2024-03-15", amount], mapping, 2
                )

                self.assertEqual(conversation.customer_name, "Cliente Sin Nombre #2")
                self.assertFalse(conversation.metadata.data_quality.has_real_name)

    def test_mapped_numeric_columns_feed_the_metadata_scan(self):
        mapping = ColumnMapping({"customer_name": 0, "total_messages": 1})

        conversation = parse_conversation_row(["Ana", 3], mapping, 2)

        self.assertEqual(conversation.total_messages, 3)
        self.assertEqual(conversation.metadata.satisfaction, 3.0)

    def test_mapped_phone_without_digits_is_not_used(self):
        mapping = ColumnMapping({"customer_name": 0, "customer_phone": 1})

        conversation = parse_conversation_row(["Ana", "sin número"], mapping, 2)

        self.assertTrue(conversation.customer_phone.startswith("+52"))
        self.assertFalse(conversation.metadata.data_quality.has_real_phone)

    def test_mapped_status_decides_even_when_pending(self):
        mapping = ColumnMapping({"customer_name": 0, "status": 1})

        conversation = parse_conversation_row(["Ana", "pendiente", "activo"], mapping, 2)

        self.assertIs(conversation.status, ConversationStatus.PENDING)
        self.assertTrue(conversation.metadata.data_quality.has_real_status)

    def test_zero_message_count_falls_back(self):
        mapping = ColumnMapping({"customer_name": 0, "total_messages": 1})

        conversation = parse_conversation_row(["Ana", "0"], mapping, 2)

        self.assertEqual(conversation.total_messages, 1)
        self.assertFalse(conversation.metadata.data_quality.has_real_message_count)

    def test_unusable_mapped_date_falls_back_to_scan(self):
        mapping = ColumnMapping({"customer_name": 0, "start_date": 1})

        conversation = parse_conversation_row(["Ana", "ayer", "20/04/2024"], mapping, 2)

        self.assertEqual(conversation.start_date, datetime(2024, 4, 20))

    def test_supplementary_columns(self):
        mapping = ColumnMapping(
            {
                "customer_name": 0,
                "satisfaction": 1,
                "purchase_value": 2,
                "end_date": 3,
                "response_time": 4,
            }
        )

        conversation = parse_conversation_row(
            ["Ana", "4,5", "$1,200", "20/03/2024", "15"], mapping, 2
        )

        self.assertEqual(conversation.metadata.satisfaction, 4.5)
        self.assertEqual(conversation.metadata.total_purchase_value, 1200.0)
        self.assertEqual(conversation.end_date, datetime(2024, 3, 20))
        self.assertEqual(conversation.metadata.response_time, 15.0)

    def test_placeholder_phones_follow_the_seed(self):
        settings = IngestSettings(phone_seed=7)
        row = [""] * len(HEADERS)

        first = parse_conversation_row(row, self.mapping, 2, settings, random.Random(7))
        second = parse_conversation_row(row, self.mapping, 2, settings, random.Random(7))

        self.assertEqual(first.customer_phone, second.customer_phone)

    def test_unrenderable_cell_produces_fallback_record(self):
        mapping = ColumnMapping({"customer_name": 0})

        with self.assertLogs("convo_ingest.row_parser", level="WARNING"):
            conversation = parse_conversation_row([Exploding()], mapping, 9)

        self.assertEqual(conversation.tags, [ERROR_TAG])
        self.assertEqual(conversation.customer_name, "Cliente Sin Nombre #9")
        self.assertEqual(conversation.last_message, RECOVERED_MESSAGE_PLACEHOLDER)
        self.assertEqual(conversation.metadata.source, "Excel Import (Error Recovery)")
        self.assertEqual(conversation.metadata.original_row_number, 9)
        self.assertIn("ValueError", conversation.metadata.import_error)

    def test_any_parse_failure_produces_fallback_record(self):
        with mock.patch.object(row_parser, "_parse_row", side_effect=RuntimeError("boom")):
            with self.assertLogs("convo_ingest.row_parser", level="WARNING"):
                conversation = parse_conversation_row(["Ana"], self.mapping, 3)

        self.assertEqual(conversation.tags, [ERROR_TAG])
        self.assertEqual(conversation.metadata.import_error, "RuntimeError: boom")
        self.assertEqual(conversation.metadata.data_quality.completeness_score, 0.0)

    def test_fallback_uses_country_code_from_settings(self):
        settings = IngestSettings(default_country_code="55", recognized_country_codes=("55",))

        conversation = build_fallback_conversation(4, settings, random.Random(1))

        self.assertTrue(conversation.customer_phone.startswith("+55"))
        self.assertIs(conversation.status, ConversationStatus.PENDING)
        self.assertEqual(conversation.total_messages, 1)


if __name__ == "__main__":
    unittest.main()
