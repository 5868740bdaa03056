"""
Tests for report validation and storage
"""
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

import sys
sys.path.insert(0, '.')

from reliefwatch.core.constants import ReportCategory, ReportStatus
from reliefwatch.core.errors import InternalError, NotFoundError, ValidationError
from reliefwatch.reports.store import ReportStore
from reliefwatch.reports.validation import parse_category, validate_new_report, validate_patch


class TestValidation:
    """Test suite for report field validation."""

    def setup_method(self):
        self.fields = {
            "name": "  River overflow ",
            "latitude": 23.81,
            "longitude": 90.41,
            "danger_level": 7,
        }

    def test_valid_report_is_normalized(self):
        values = validate_new_report(self.fields)

        assert values["name"] == "River overflow"
        assert values["danger_level"] == 7
        assert isinstance(values["latitude"], float)

    @pytest.mark.parametrize("missing,field", [
        ("latitude", "location"),
        ("longitude", "location"),
        ("name", "name"),
        ("danger_level", "dangerLevel"),
    ])
    def test_missing_required_field(self, missing, field):
        del self.fields[missing]

        with pytest.raises(ValidationError) as exc_info:
            validate_new_report(self.fields)

        assert exc_info.value.field == field

    @pytest.mark.parametrize("level", [0, 11, -3, 7.5, "high", True])
    def test_danger_level_out_of_range(self, level):
        self.fields["danger_level"] = level

        with pytest.raises(ValidationError) as exc_info:
            validate_new_report(self.fields)

        assert exc_info.value.field == "dangerLevel"

    @pytest.mark.parametrize("level", [1, 10, "4"])
    def test_danger_level_bounds(self, level):
        self.fields["danger_level"] = level
        assert 1 <= validate_new_report(self.fields)["danger_level"] <= 10

    @pytest.mark.parametrize("lat,lon", [(91, 0), (0, 181), (-90.01, 10)])
    def test_coordinates_out_of_range(self, lat, lon):
        self.fields.update(latitude=lat, longitude=lon)

        with pytest.raises(ValidationError) as exc_info:
            validate_new_report(self.fields)

        assert exc_info.value.field == "location"

    def test_blank_name(self):
        self.fields["name"] = "   "
        with pytest.raises(ValidationError):
            validate_new_report(self.fields)

    @pytest.mark.parametrize("field", ["status", "assigned_responders", "status_history", "version"])
    def test_lifecycle_fields_rejected(self, field):
        self.fields[field] = "x"
        with pytest.raises(ValidationError):
            validate_new_report(self.fields)

    def test_unknown_field_rejected(self):
        self.fields["color"] = "red"
        with pytest.raises(ValidationError) as exc_info:
            validate_new_report(self.fields)
        assert exc_info.value.field == "color"

    def test_patch_checks_single_coordinate_against_current(self):
        current = {"latitude": 23.81, "longitude": 90.41}

        assert validate_patch({"latitude": 24.0}, current) == {"latitude": 24.0}
        with pytest.raises(ValidationError):
            validate_patch({"longitude": 200}, current)

    def test_patch_rejects_reporter_change(self):
        with pytest.raises(ValidationError):
            validate_patch({"reporter_id": "someone-else"})

    @pytest.mark.parametrize("value,expected", [
        ("flood", ReportCategory.FLOOD),
        ("Earthquake", ReportCategory.EARTHQUAKE),
        (" SOS ", ReportCategory.SOS),
        (ReportCategory.FIRE, ReportCategory.FIRE),
    ])
    def test_parse_category(self, value, expected):
        assert parse_category(value) == expected

    def test_unknown_category(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_category("volcano")
        assert exc_info.value.field == "category"


class TestReportStore:
    """Test suite for report persistence."""

    @pytest.fixture(autouse=True)
    def setup(self, db, flood_fields):
        self.db = db
        self.store = ReportStore(db)
        self.fields = flood_fields

    def test_create_flood_report(self):
        report = self.store.create("flood", self.fields)

        assert report.id is not None
        assert report.category == ReportCategory.FLOOD
        assert report.status == ReportStatus.PENDING
        assert report.assigned_responders == []
        assert report.visible is True
        assert report.version == 1

    def test_to_dict_uses_api_shape(self):
        body = self.store.create("flood", self.fields).to_dict()

        assert body["category"] == "flood"
        assert body["dangerLevel"] == 7
        assert body["location"] == {"lat": 23.81, "lon": 90.41, "address": "Karwan Bazar, Dhaka"}
        assert body["assignedResponders"] == []
        assert body["status"] == "pending"

    def test_invalid_report_is_not_stored(self):
        with pytest.raises(ValidationError):
            self.store.create("flood", dict(self.fields, danger_level=12))

        assert self.store.list("flood", include_hidden=True) == []

    def test_get_by_category(self):
        report = self.store.create("flood", self.fields)

        assert self.store.get("flood", report.id).id == report.id
        with pytest.raises(NotFoundError):
            self.store.get("fire", report.id)
        with pytest.raises(NotFoundError):
            self.store.get("flood", report.id + 100)

    def test_list_newest_first(self):
        first = self.store.create("flood", self.fields)
        second = self.store.create("flood", dict(self.fields, name="Second"))
        self.store.create("fire", dict(self.fields, name="Fire"))

        listed = self.store.list("flood")

        assert [r.id for r in listed] == [second.id, first.id]

    def test_hidden_reports_excluded_by_default(self):
        shown = self.store.create("flood", self.fields)
        hidden = self.store.create("flood", dict(self.fields, name="Hidden"))
        self.store.set_visibility("flood", hidden.id, False)

        assert [r.id for r in self.store.list("flood")] == [shown.id]
        assert {r.id for r in self.store.list("flood", include_hidden=True)} == {shown.id, hidden.id}

    def test_update_fields(self):
        report = self.store.create("flood", self.fields)

        updated = self.store.update_fields("flood", report.id, {"danger_level": 9, "description": None})

        assert updated.danger_level == 9
        assert updated.description is None
        assert updated.version == report.version + 1
        assert updated.updated_at >= report.updated_at

    def test_update_rejects_lifecycle_fields(self):
        report = self.store.create("flood", self.fields)

        with pytest.raises(ValidationError):
            self.store.update_fields("flood", report.id, {"status": "resolved"})

        assert self.store.find(report.id).status == ReportStatus.PENDING

    def test_update_missing_report(self):
        with pytest.raises(NotFoundError):
            self.store.update_fields("flood", 424242, {"danger_level": 3})

    def test_delete(self):
        report = self.store.create("flood", self.fields)

        self.store.delete("flood", report.id)

        with pytest.raises(NotFoundError):
            self.store.find(report.id)
        with pytest.raises(NotFoundError):
            self.store.delete("flood", report.id)

    def test_bulk_create_is_all_or_nothing(self):
        records = [dict(self.fields, name=f"Quake {i}") for i in range(3)]

        created = self.store.bulk_create("earthquake", records)
        assert len(created) == 3
        assert all(r.status == ReportStatus.PENDING for r in created)

        with pytest.raises(ValidationError):
            self.store.bulk_create("earthquake", records + [dict(self.fields, danger_level=None)])
        assert len(self.store.list("earthquake")) == 3

    def test_statistics(self):
        self.store.create("flood", self.fields)
        self.store.create("flood", self.fields)
        fire = self.store.create("fire", self.fields)
        self.store.compare_and_swap(fire.id, fire.version, {"status": ReportStatus.RESOLVED})

        stats = self.store.statistics()

        assert stats["totalReports"] == 3
        assert stats["byCategory"] == {"flood": 2, "fire": 1}
        assert stats["byStatus"] == {"pending": 2, "resolved": 1}
        assert stats["pendingCount"] == 2
        assert stats["resolutionRate"] == pytest.approx(1 / 3)

    def test_statistics_empty(self):
        assert self.store.statistics()["resolutionRate"] == 0

    def test_list_assigned_to(self):
        report = self.store.create("flood", self.fields)
        other = self.store.create("flood", self.fields)
        assignment = {
            "responderId": "ff-1",
            "responderRole": "firefighter",
            "displayName": "Station",
            "contactInfo": None,
            "distanceAtAssignment": None,
            "assignedAt": "2026-03-01T12:00:00",
        }
        self.store.compare_and_swap(report.id, report.version, {
            "status": ReportStatus.PROCESSING,
            "assigned_responders": [assignment],
        })

        assert [r.id for r in self.store.list_assigned_to("ff-1")] == [report.id]
        assert self.store.list_assigned_to("ff-1", [ReportStatus.RESOLVED]) == []
        assert self.store.list_assigned_to("ff-2") == []
        assert other.id not in [r.id for r in self.store.list_assigned_to("ff-1")]

    def test_compare_and_swap_bumps_version(self):
        report = self.store.create("flood", self.fields)

        assert self.store.compare_and_swap(report.id, 1, {"status": ReportStatus.PROCESSING})
        assert self.store.find(report.id).version == 2
        assert not self.store.compare_and_swap(report.id, 1, {"status": ReportStatus.RESOLVED})
        assert self.store.find(report.id).status == ReportStatus.PROCESSING

    def test_database_errors_become_internal(self):
        with patch.object(self.db, "get_session", side_effect=OperationalError("SELECT", {}, Exception("down"))):
            with pytest.raises(InternalError):
                self.store.list("flood")
