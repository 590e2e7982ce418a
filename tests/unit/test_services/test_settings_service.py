"""Tests for the business settings service."""

import logging
from decimal import Decimal

import pytest

from app.models.setting import Setting
from app.points.calculator import RoundingMode
from app.services.settings import SettingsService


async def store(db_session, **values):
    db_session.add_all([Setting(key=k, value=v) for k, v in values.items()])
    await db_session.commit()


class TestPointsRules:
    @pytest.mark.asyncio
    async def test_defaults_when_table_is_empty(self, db_session):
        rules = await SettingsService(db_session).get_points_rules()

        assert rules.ratio == Decimal("1")
        assert rules.rounding is RoundingMode.FLOOR
        assert rules.min_eligible_amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_stored_values(self, db_session):
        await store(db_session, POINTS_RATIO="2.5", POINTS_ROUNDING="CEIL", MIN_ELIGIBLE_AMOUNT="10")

        rules = await SettingsService(db_session).get_points_rules()

        assert rules.ratio == Decimal("2.5")
        assert rules.rounding is RoundingMode.CEIL
        assert rules.min_eligible_amount == Decimal("10")

    @pytest.mark.asyncio
    async def test_lowercase_keys_are_read(self, db_session):
        await store(db_session, points_ratio="3")

        assert await SettingsService(db_session).get_decimal("POINTS_RATIO") == Decimal("3")

    @pytest.mark.asyncio
    async def test_blank_value_uses_default(self, db_session):
        await store(db_session, MIN_ELIGIBLE_AMOUNT="   ")

        assert await SettingsService(db_session).get("MIN_ELIGIBLE_AMOUNT") == "0"

    @pytest.mark.asyncio
    async def test_invalid_number_uses_default(self, db_session, caplog):
        await store(db_session, POINTS_RATIO="two")

        with caplog.at_level(logging.WARNING, logger="app.services.settings"):
            ratio = await SettingsService(db_session).get_decimal("POINTS_RATIO")

        assert ratio == Decimal("1")
        assert "Invalid numeric setting" in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_rounding_falls_back_to_floor(self, db_session):
        await store(db_session, POINTS_ROUNDING="bankers")

        rules = await SettingsService(db_session).get_points_rules()

        assert rules.rounding is RoundingMode.FLOOR


class TestNotificationMessage:
    @pytest.mark.asyncio
    async def test_default_template(self, db_session):
        message = await SettingsService(db_session).get_notification_message(44)

        assert "44 point(s)" in message

    @pytest.mark.asyncio
    async def test_custom_template(self, db_session):
        await store(db_session, NOTIFICATION_MESSAGE_TEMPLATE="Bravo, +{points} pts ({points})")

        message = await SettingsService(db_session).get_notification_message(7)

        assert message == "Bravo, +7 pts (7)"
