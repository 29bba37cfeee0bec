"""Unit tests for environment-driven settings."""

from __future__ import annotations

import os
import unittest
from decimal import Decimal
from unittest import mock

from orderbot.core.settings import Settings


class SettingsTestCase(unittest.TestCase):
    """Covers parsing of values read from the environment."""

    def test_admin_phones_comma_separated(self) -> None:
        with mock.patch.dict(os.environ, {"ADMIN_PHONES": "5491100000000, 5491111111111,"}):
            settings = Settings(_env_file=None)

        self.assertEqual(settings.admin_phones, ["5491100000000", "5491111111111"])

    def test_admin_phones_single_value(self) -> None:
        with mock.patch.dict(os.environ, {"ADMIN_PHONES": "5491100000000"}):
            settings = Settings(_env_file=None)

        self.assertEqual(settings.admin_phones, ["5491100000000"])

    def test_admin_phones_passed_as_list(self) -> None:
        settings = Settings(_env_file=None, admin_phones=["5491100000000"])

        self.assertEqual(settings.admin_phones, ["5491100000000"])

    def test_numeric_values_from_environment(self) -> None:
        env = {"DELIVERY_FEE": "500", "SESSION_TIMEOUT_MINUTES": "15"}
        with mock.patch.dict(os.environ, env):
            settings = Settings(_env_file=None)

        self.assertEqual(settings.delivery_fee, Decimal("500"))
        self.assertEqual(settings.session_timeout_minutes, 15)


if __name__ == "__main__":
    unittest.main()
