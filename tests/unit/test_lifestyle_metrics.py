from datetime import time

import pytest

from healthcalc.core.engine.base import FlagLevel, ReadingSource
from healthcalc.core.metrics import get_orchestrator
from healthcalc.core.metrics.hydration import baseline_need
from healthcalc.core.metrics.sleep import duration_quality, format_minutes, sleep_options
from healthcalc.core.metrics.vitamin_d import estimate_level


class TestVitaminD:
    @pytest.fixture
    def subject(self):
        return {"age": 40, "gender": "female", "body_weight": 70}

    def assess(self, data):
        return get_orchestrator("vitamin_d").assess(data)

    def test_level_is_estimated_without_lab_value(self, subject):
        """Test that a missing lab value falls back to a lifestyle estimate."""
        result = self.assess(subject).result
        level = result.reading("current_level")
        assert level.value == 38
        assert level.source == ReadingSource.ESTIMATED
        assert level.category.label == "Sufficient"
        assert result.details["estimated"] is True
        assert result.details["supplementation"]["recommended"] is True
        assert result.risk.tier.code == "very_low"

    def test_measured_severe_deficiency(self, subject):
        subject["current_level"] = 10
        result = self.assess(subject).result
        level = result.reading("current_level")
        assert level.source == ReadingSource.MEASURED
        assert level.category.label == "Severe Deficiency"
        assert [f.kind for f in result.flags] == ["severe_deficiency"]
        assert result.details["supplementation"]["daily_dose"]["optimal"] == 4000

    def test_nmol_input(self, subject):
        subject.update(current_level=100, vitamin_d_unit="nmol_l")
        result = self.assess(subject).result
        level = result.reading("current_level")
        assert level.value == pytest.approx(40)
        assert level.display_unit == "nmol/L"
        assert level.category.label == "Sufficient"
        assert result.details["level_nmol_l"] == pytest.approx(100)

    def test_excessive_level(self, subject):
        subject["current_level"] = 120
        result = self.assess(subject).result
        assert result.reading("current_level").category.label == "Excessive"
        assert [f.kind for f in result.flags] == ["excessive_level"]

    def test_deficiency_risk_factors(self, subject):
        subject.update(age=70, skin_type="very_dark", sun_exposure_hours=0.5, season="winter")
        result = self.assess(subject).result
        assert result.risk.score == 10
        assert result.risk.tier.code == "very_high"
        categories = [i["category"] for i in result.details["insights"]]
        assert "Seasonal Health" in categories
        assert "Genetic Factors" in categories

    def test_supplements_reduce_risk(self, subject):
        subject.update(season="winter", supplement_use="moderate_dose", current_supplement_dose=1000)
        result = self.assess(subject).result
        assert result.risk.score == 0

    def test_supplement_dose_required_when_supplementing(self, subject):
        subject["supplement_use"] = "low_dose"
        outcome = self.assess(subject)
        assert "current_supplement_dose" in outcome.errors

    def test_kidney_disease_with_supplements(self, subject):
        subject.update(supplement_use="low_dose", current_supplement_dose=1000,
                       medical_conditions=["kidney_disease"])
        result = self.assess(subject).result
        assert [f.kind for f in result.flags] == ["kidney_disease_supplementation"]
        contraindications = result.details["supplementation"]["contraindications"]
        assert contraindications == ["Kidney disease - requires medical supervision"]

    def test_estimate_is_clamped(self):
        low = estimate_level({"sun_exposure_hours": 0, "skin_type": "very_dark", "season": "winter",
                              "supplement_use": "none", "dietary_intake": "very_low"})
        high = estimate_level({"sun_exposure_hours": 6, "skin_type": "fair", "season": "summer",
                               "supplement_use": "high_dose", "dietary_intake": "high"})
        assert low == 10
        assert high == 60


class TestHydration:
    @pytest.fixture
    def subject(self):
        return {"weight": 70, "height": 175, "age": 30, "gender": "male",
                "activity_level": "moderate", "climate": "temperate"}

    def assess(self, data):
        outcome = get_orchestrator("hydration").assess(data)
        assert outcome.is_valid, outcome.errors
        return outcome.result

    def test_baseline_need(self):
        assert baseline_need(70, 30, "male") == pytest.approx(2.465)

    def test_daily_need_without_intake(self, subject):
        result = self.assess(subject)
        assert result.readings == []
        assert result.details["total_daily_need_l"] == pytest.approx(2.59, abs=0.01)
        assert result.details["climate_adjustment_l"] == pytest.approx(0.12)
        assert "intake_difference_l" not in result.details

    def test_adequate_intake(self, subject):
        subject["current_intake"] = 2.5
        ratio = self.assess(subject).reading("intake_ratio")
        assert ratio.category.label == "Adequate"
        assert ratio.value == pytest.approx(0.966, abs=0.001)

    def test_low_intake_in_fluid_ounces(self, subject):
        subject.update(current_intake=50, intake_unit="fl_oz")
        result = self.assess(subject)
        assert result.reading("intake_ratio").category.label == "Low"
        assert result.details["intake_difference_l"] < 0

    def test_exercise_and_conditions(self, subject):
        subject.update(exercise_duration=60, exercise_intensity="high", sweat_rate="high",
                       health_conditions=["fever"])
        result = self.assess(subject)
        assert result.details["activity_adjustment_l"] == pytest.approx(1.04)
        assert result.details["condition_adjustment_l"] == pytest.approx(0.32, abs=0.01)
        assert [f.kind for f in result.flags] == ["fluid_loss_illness"]
        timings = [s["timing"] for s in result.details["schedule"]]
        assert "Every 15-20 minutes during exercise" in timings

    def test_fluid_restriction_warning(self, subject):
        subject["health_conditions"] = ["kidney_disease"]
        result = self.assess(subject)
        assert result.highest_flag == FlagLevel.WARNING


class TestSleep:
    def assess(self, data):
        outcome = get_orchestrator("sleep").assess(data)
        assert outcome.is_valid, outcome.errors
        return outcome.result

    def test_bedtimes_for_wake_time(self):
        result = self.assess({"calculation_type": "bedtime", "target_time": "07:00"})
        times = [o["time"] for o in result.details["recommended_times"]]
        assert times == ["23:15", "21:45", "01:15"]
        assert result.reading("sleep_hours").value == 7.5
        assert result.reading("sleep_hours").category.label == "Recommended"
        assert result.reading("chronotype_offset").category.label == "Intermediate"
        assert result.details["circadian"]["ideal_bedtime"] == "22:30"
        assert all(not k.startswith("_") for o in result.details["recommended_times"] for k in o)

    def test_wake_times_for_bedtime(self):
        result = self.assess({"calculation_type": "waketime", "target_time": "23:00"})
        assert result.details["recommended_times"][0]["time"] == "06:45"
        assert result.reading("chronotype_offset").value == 5

    def test_night_owl(self):
        result = self.assess({"calculation_type": "bedtime", "target_time": "09:00"})
        assert result.details["recommended_times"][0]["time"] == "01:15"
        assert result.reading("chronotype_offset").category.label == "Night Owl"

    def test_early_bird(self):
        result = self.assess({"calculation_type": "bedtime", "target_time": "05:00"})
        assert result.reading("chronotype_offset").category.label == "Early Bird"

    def test_fixed_duration(self):
        result = self.assess({"target_time": "07:00", "include_cycles": False, "sleep_duration": 5})
        options = result.details["recommended_times"]
        assert len(options) == 1
        assert options[0]["cycles"] == 3
        assert options[0]["quality"] == "Fair"
        assert result.reading("sleep_hours").category.label == "Insufficient"

    def test_age_specific_quality(self):
        result = self.assess({"target_time": "07:00", "age": 15})
        assert result.details["ideal_hours"] == {"min": 8, "max": 10}
        assert result.details["duration_quality"] == "good"

    def test_invalid_time(self):
        outcome = get_orchestrator("sleep").assess({"target_time": "25:00"})
        assert "target_time" in outcome.errors

    def test_helpers(self):
        assert format_minutes(-45) == "23:15"
        assert format_minutes(1500) == "01:00"
        assert duration_quality(8, 30) == "excellent"
        assert duration_quality(4, 30) == "poor"
        options = sleep_options({"calculation_type": "bedtime", "target_time": time(6, 0),
                                 "fall_asleep_time": 0, "include_cycles": True})
        assert [o["cycles"] for o in options] == [5, 6, 4]
