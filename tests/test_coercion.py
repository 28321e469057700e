import random
import unittest
from datetime import datetime

import pandas as pd

from convo_ingest.coercion import (
    cell_text,
    format_phone_number,
    looks_like_date,
    looks_like_phone,
    normalize_scalar,
    parse_date,
    parse_number,
    parse_status,
    synthesize_phone,
)
from convo_ingest.config import IngestSettings
from convo_ingest.errors import DateParseError
from convo_ingest.models import ConversationStatus


class DateParsingTests(unittest.TestCase):
    def test_spreadsheet_serial(self):
        self.assertEqual(parse_date(44927), datetime(2023, 1, 1))
        self.assertEqual(parse_date(45366.5), datetime(2024, 3, 15, 12, 0))

    def test_day_first_and_iso_strings(self):
        self.assertEqual(parse_date("15/03/2024"), datetime(2024, 3, 15))
        self.assertEqual(parse_date("2024-03-15"), datetime(2024, 3, 15))
        self.assertEqual(parse_date("15-03-2024"), datetime(2024, 3, 15))

    def test_time_of_day_is_kept(self):
        self.assertEqual(parse_date("15/03/2024 10:30"), datetime(2024, 3, 15, 10, 30))
        self.assertEqual(parse_date("2024-03-15T08:05:09"), datetime(2024, 3, 15, 8, 5, 9))

    def test_timezone_aware_iso_is_converted_to_naive_utc(self):
        self.assertEqual(parse_date("2024-03-15T10:00:00Z"), datetime(2024, 3, 15, 10, 0))
        self.assertEqual(parse_date("2024-03-15T10:00:00-06:00"), datetime(2024, 3, 15, 16, 0))

    def test_written_out_month_names(self):
        self.assertEqual(parse_date("15 de marzo de 2024"), datetime(2024, 3, 15))
        self.assertEqual(parse_date("March 5, 2024"), datetime(2024, 3, 5))
        self.assertEqual(parse_date("3 Out 2023"), datetime(2023, 10, 3))

    def test_datetime_values_pass_through(self):
        value = datetime(2024, 1, 2, 3, 4)
        self.assertEqual(parse_date(value), value)
        self.assertEqual(parse_date(pd.Timestamp("2024-01-02")), datetime(2024, 1, 2))

    def test_unparseable_values_raise(self):
        for value in ("not a date", "31/02/2024", "", None):
            with self.subTest(value=value):
                with self.assertRaises(DateParseError):
                    parse_date(value)

    def test_date_parse_error_is_a_value_error(self):
        with self.assertRaises(ValueError):
            parse_date("mañana")

    def test_looks_like_date(self):
        self.assertTrue(looks_like_date(45000))
        self.assertTrue(looks_like_date("15/03/2024"))
        self.assertTrue(looks_like_date("12 ene"))
        self.assertTrue(looks_like_date(datetime(2024, 1, 1)))
        self.assertFalse(looks_like_date(123))
        self.assertFalse(looks_like_date("hola"))
        self.assertFalse(looks_like_date(None))


class StatusParsingTests(unittest.TestCase):
    def test_known_words_in_any_language(self):
        cases = {
            "completado": ConversationStatus.COMPLETED,
            "Completed": ConversationStatus.COMPLETED,
            "FINALIZADO": ConversationStatus.COMPLETED,
            "Concluído": ConversationStatus.COMPLETED,
            "  Abandonado ": ConversationStatus.ABANDONED,
            "En curso": ConversationStatus.ACTIVE,
            "in_progress": ConversationStatus.ACTIVE,
            "ativo": ConversationStatus.ACTIVE,
            "pendiente": ConversationStatus.PENDING,
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertIs(parse_status(raw), expected)

    def test_unknown_or_empty_is_pending(self):
        self.assertIs(parse_status("whatever"), ConversationStatus.PENDING)
        self.assertIs(parse_status(None), ConversationStatus.PENDING)
        self.assertIs(parse_status(3), ConversationStatus.PENDING)


class PhoneTests(unittest.TestCase):
    def test_local_number_gets_default_country_code(self):
        self.assertEqual(format_phone_number("55 1234-5678"), "+525512345678")

    def test_explicit_plus_is_kept(self):
        self.assertEqual(format_phone_number("+1 (555) 123-4567"), "+15551234567")

    def test_recognised_prefix_is_not_doubled(self):
        self.assertEqual(format_phone_number("52 55 1234 5678"), "+525512345678")

    def test_numeric_cells(self):
        self.assertEqual(format_phone_number(5512345678.0), "+525512345678")

    def test_no_digits_gives_fallback(self):
        self.assertEqual(format_phone_number(""), "+52000000000")
        self.assertEqual(format_phone_number("N/A"), "+52000000000")

    def test_country_code_from_settings(self):
        settings = IngestSettings(default_country_code="55", recognized_country_codes=("55",))

        self.assertEqual(format_phone_number("11 98765 4321", settings), "+5511987654321")
        self.assertEqual(format_phone_number(None, settings), "+55000000000")

    def test_looks_like_phone(self):
        self.assertTrue(looks_like_phone("+52 (55) 1234-5678"))
        self.assertTrue(looks_like_phone(5512345678))
        self.assertFalse(looks_like_phone("2024-03-15"))
        self.assertFalse(looks_like_phone("1234"))
        self.assertFalse(looks_like_phone("Ana López"))

    def test_synthesized_phones_follow_the_seed(self):
        first = synthesize_phone(random.Random(1))
        second = synthesize_phone(random.Random(1))

        self.assertEqual(first, second)
        self.assertTrue(first.startswith("+52"))
        self.assertEqual(len(first), 13)


class NumberAndCellTests(unittest.TestCase):
    def test_parse_number_handles_locale_separators(self):
        self.assertEqual(parse_number("1.234,56"), 1234.56)
        self.assertEqual(parse_number("1,234.56"), 1234.56)
        self.assertEqual(parse_number("4,5"), 4.5)
        self.assertEqual(parse_number("$1,200"), 1200.0)
        self.assertEqual(parse_number("MXN 350"), 350.0)
        self.assertEqual(parse_number("(20)"), -20.0)

    def test_parse_number_rejects_non_numbers(self):
        self.assertIsNone(parse_number("abc"))
        self.assertIsNone(parse_number("n/a"))
        self.assertIsNone(parse_number(True))
        self.assertIsNone(parse_number(None))

    def test_cell_text(self):
        self.assertEqual(cell_text(3.0), "3")
        self.assertEqual(cell_text(None), "")
        self.assertEqual(cell_text("  hola "), "hola")
        self.assertEqual(cell_text(float("nan")), "")
        self.assertEqual(cell_text(datetime(2024, 3, 15, 9, 30)), "2024-03-15 09:30:00")

    def test_normalize_scalar_drops_missing_markers(self):
        self.assertIsNone(normalize_scalar(pd.NaT))
        self.assertIsNone(normalize_scalar(float("nan")))
        self.assertEqual(normalize_scalar(pd.Timestamp("2024-03-15 10:00", tz="UTC")), datetime(2024, 3, 15, 10, 0))


if __name__ == "__main__":
    unittest.main()
