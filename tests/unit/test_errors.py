"""Tests for the error taxonomy and the service boundary translator."""

import pytest
from pydantic import BaseModel, ValidationError

from league_stats.errors import (
    AggregationError,
    AppError,
    InvalidInputError,
    NotFoundError,
    StoreError,
    parse_input,
    service_operation,
)
from league_stats.league_logging import metrics
from league_stats.models import CreatePlayerStats, UpdatePlayerStats


class Sample(BaseModel):
    count: int


class TestPayload:
    def test_to_dict(self):
        assert NotFoundError("Player stats x not found").to_dict() == {
            "success": False,
            "message": "Player stats x not found",
            "statusCode": 404,
        }

    def test_details_become_errors(self):
        error = InvalidInputError("bad", details=[{"field": "gameId", "message": "required"}])
        assert error.to_dict()["errors"] == [{"field": "gameId", "message": "required"}]
        assert error.status_code == 400

    def test_status_codes(self):
        assert AggregationError().status_code == 500
        assert StoreError("x").status_code == 500
        assert AppError("x").status_code == 500


class TestParseInput:
    def test_validation_error_becomes_invalid_input(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_input(CreatePlayerStats, {"playerId": "p1", "teamType": "TEAM_A"})
        fields = [d["field"] for d in exc_info.value.details]
        assert "gameId" in fields
        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_derived_fields_are_rejected(self):
        with pytest.raises(InvalidInputError):
            parse_input(UpdatePlayerStats, {"totalPoints": 40})

    def test_negative_counts_are_rejected(self):
        with pytest.raises(InvalidInputError):
            parse_input(UpdatePlayerStats, {"assists": -1})

    def test_instances_pass_through(self):
        sample = Sample(count=1)
        assert parse_input(Sample, sample) is sample


class TestServiceOperation:
    @pytest.mark.asyncio
    async def test_app_errors_pass_through_unchanged(self):
        original = NotFoundError("missing")

        @service_operation("Lookup failed")
        async def lookup():
            raise original

        with pytest.raises(NotFoundError) as exc_info:
            await lookup()
        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_wrapped(self):
        @service_operation("Lookup failed")
        async def lookup():
            raise RuntimeError("connection string with secrets")

        with pytest.raises(AppError) as exc_info:
            await lookup()

        error = exc_info.value
        assert type(error) is AppError
        assert error.message == "Lookup failed"
        assert error.status_code == 500
        assert "secrets" not in str(error.to_dict())
        assert isinstance(error.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_store_errors_are_wrapped(self):
        @service_operation("Save failed")
        async def save():
            raise StoreError("Store add on 'player_stats' failed")

        with pytest.raises(AppError) as exc_info:
            await save()
        assert type(exc_info.value) is AppError
        assert exc_info.value.message == "Save failed"

    @pytest.mark.asyncio
    async def test_failures_are_counted(self):
        @service_operation("Boom")
        async def explode():
            raise ValueError("boom")

        with pytest.raises(AppError):
            await explode()
        counters = metrics.get_metrics()["counters"]
        assert any(key.startswith("service.errors") for key in counters)

    @pytest.mark.asyncio
    async def test_success_returns_value(self):
        @service_operation("never")
        async def ok():
            return 42

        assert await ok() == 42
