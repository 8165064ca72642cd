from datetime import date

import pytest

from healthcalc.core.metrics import get_orchestrator
from healthcalc.core.metrics.due_date import development_stage, due_date, upcoming_milestones
from healthcalc.core.metrics.ovulation import cycle_dates, current_phase, ovulation_date


class TestOvulation:
    def assess(self, data):
        return get_orchestrator("ovulation").assess(data)

    def test_fertile_window(self):
        result = self.assess({"last_menstrual_period": "2024-01-01", "today": "2024-01-12"}).result
        details = result.details
        assert details["ovulation_date"] == "2024-01-15"
        assert details["fertile_window_start"] == "2024-01-10"
        assert details["next_period_date"] == "2024-01-29"
        assert details["current_phase"] == "Follicular"
        assert details["cycle_day"] == 12
        assert details["days_until_ovulation"] == 3
        assert details["fertility_status"] == "High"
        assert "Ovulation in 3 days - prepare for fertile window" in details["recommendations"]
        assert result.reading("days_from_ovulation").category.label == "High - Fertile Window"

    @pytest.mark.parametrize("today,label,status", [
        ("2024-01-05", "Low - Early Cycle", "Low"),
        ("2024-01-08", "Medium - Approaching", "Medium"),
        ("2024-01-15", "High - Fertile Window", "High"),
        ("2024-01-16", "Medium - Post-ovulation", "Medium"),
        ("2024-01-20", "Low - Luteal", "Low"),
    ])
    def test_fertility_status_over_the_cycle(self, today, label, status):
        result = self.assess({"last_menstrual_period": "2024-01-01", "today": today}).result
        assert result.reading("days_from_ovulation").category.label == label
        assert result.details["fertility_status"] == status

    def test_future_cycles(self):
        result = self.assess({"last_menstrual_period": "2024-01-01", "cycle_length": 30,
                              "today": "2024-01-02"}).result
        cycles = result.details["future_cycles"]
        assert len(cycles) == 6
        assert cycles[0] == {
            "cycle": 2,
            "period_start": "2024-01-31",
            "ovulation_date": "2024-02-16",
            "fertile_window_start": "2024-02-11",
            "fertile_window_end": "2024-02-16",
        }

    def test_future_lmp_rejected(self):
        outcome = self.assess({"last_menstrual_period": "2024-02-01", "today": "2024-01-12"})
        assert "last_menstrual_period" in outcome.errors

    def test_period_must_end_before_ovulation(self):
        outcome = self.assess({"last_menstrual_period": "2024-01-01", "cycle_length": 21,
                               "period_length": 8, "today": "2024-01-12"})
        assert "period_length" in outcome.errors

    def test_phases(self):
        dates = cycle_dates(date(2024, 1, 1), 28, 5)
        assert current_phase(date(2024, 1, 3), dates) == "Menstrual"
        assert current_phase(date(2024, 1, 15), dates) == "Ovulation"
        assert current_phase(date(2024, 1, 20), dates) == "Luteal"
        assert current_phase(date(2024, 2, 10), dates) == "Pre-menstrual"
        assert ovulation_date(date(2024, 1, 1), 35) == date(2024, 1, 22)


class TestDueDate:
    def assess(self, data):
        return get_orchestrator("due_date").assess(data)

    def test_lmp_method(self):
        result = self.assess({"last_menstrual_period": "2024-01-01", "today": "2024-03-01"}).result
        details = result.details
        assert details["due_date"] == "2024-10-07"
        assert details["gestational_age"] == {"weeks": 8, "days": 4, "total_days": 60}
        assert result.reading("gestational_weeks").category.label == "First Trimester"
        assert details["accuracy"]["reliability"] == "Moderate (±14 days)"
        assert details["key_dates"]["conception"] == "2024-01-15"

    def test_long_cycle_shifts_due_date(self):
        result = self.assess({"last_menstrual_period": "2024-01-01", "cycle_length": 35,
                              "today": "2024-03-01"}).result
        assert result.details["due_date"] == "2024-10-14"

    @pytest.mark.parametrize("data", [
        {"calculation_type": "conception", "conception_date": "2024-01-15"},
        {"calculation_type": "ultrasound", "ultrasound_date": "2024-03-01",
         "ultrasound_weeks": 8, "ultrasound_days": 4},
    ])
    def test_methods_agree(self, data):
        result = self.assess(dict(data, today="2024-03-01")).result
        assert result.details["due_date"] == "2024-10-07"
        assert result.details["gestational_age"]["weeks"] == 8

    def test_post_term_flag(self):
        result = self.assess({"last_menstrual_period": "2024-01-01", "today": "2024-10-25"}).result
        assert result.reading("gestational_weeks").category.label == "Third Trimester"
        assert [f.kind for f in result.flags] == ["post_term"]
        assert result.details["days_remaining"] == 0

    def test_implausibly_long_pregnancy_rejected(self):
        outcome = self.assess({"last_menstrual_period": "2024-01-01", "today": "2024-11-10"})
        assert "calculation_type" in outcome.errors

    def test_method_requires_its_dates(self):
        outcome = self.assess({"calculation_type": "ultrasound", "ultrasound_date": "2024-03-01",
                               "today": "2024-03-10"})
        assert "calculation_type" in outcome.errors

    def test_future_date_rejected(self):
        outcome = self.assess({"last_menstrual_period": "2024-05-01", "today": "2024-03-01"})
        assert outcome.errors == {"last_menstrual_period": "Date cannot be in the future"}

    def test_helpers(self):
        assert due_date(date(2023, 3, 1)) == date(2023, 12, 6)
        assert development_stage(0) == "Neural tube forming, heart begins to beat"
        assert development_stage(21) == "Hearing developing, movement felt by mother"
        assert [m["week"] for m in upcoming_milestones(20)] == [24, 28]
