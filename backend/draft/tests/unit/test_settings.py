import pytest

from draft.logic.enums import DraftMode
from draft.logic.exceptions import InvalidConfigurationError
from draft.logic.settings import MAJOR_CATEGORIES, DraftSettings, validate_participant_order, validate_settings


class TestDefaults:
    def test_movie_draft_defaults(self):
        settings = DraftSettings()

        assert settings.mode == DraftMode.MOVIE_DRAFT
        assert settings.units_per_participant == 5
        assert settings.has_timer is True
        assert settings.rearm_timer_on_resume is False

    def test_oscar_defaults_to_major_categories(self):
        settings = DraftSettings(mode=DraftMode.OSCAR_PREDICTION)

        assert settings.is_oscar is True
        assert settings.categories == MAJOR_CATEGORIES

    def test_zero_timer_means_unlimited(self):
        assert DraftSettings(pick_timer_seconds=0).has_timer is False


class TestValidateSettings:
    def test_valid_settings_pass(self):
        validate_settings(DraftSettings())

    def test_non_positive_units_rejected(self):
        with pytest.raises(InvalidConfigurationError, match="units_per_participant=0"):
            validate_settings(DraftSettings(units_per_participant=0))

    def test_negative_timer_rejected(self):
        with pytest.raises(InvalidConfigurationError, match="pick_timer_seconds"):
            validate_settings(DraftSettings(pick_timer_seconds=-1))

    def test_collects_every_problem(self):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            validate_settings(DraftSettings(units_per_participant=-2, pick_timer_seconds=-5))

        assert "units_per_participant" in exc_info.value.message
        assert "pick_timer_seconds" in exc_info.value.message

    def test_oscar_units_cannot_exceed_categories(self):
        settings = DraftSettings(
            mode=DraftMode.OSCAR_PREDICTION,
            units_per_participant=4,
            categories=("best_picture", "best_director"),
        )
        with pytest.raises(InvalidConfigurationError, match="exceeds"):
            validate_settings(settings)

    def test_oscar_duplicate_categories_rejected(self):
        settings = DraftSettings(
            mode=DraftMode.OSCAR_PREDICTION,
            units_per_participant=1,
            categories=("best_picture", "best_picture"),
        )
        with pytest.raises(InvalidConfigurationError, match="duplicates"):
            validate_settings(settings)

    def test_oscar_without_categories_rejected(self):
        with pytest.raises(InvalidConfigurationError, match="at least one category"):
            validate_settings(DraftSettings(mode=DraftMode.OSCAR_PREDICTION, categories=()))


class TestValidateParticipantOrder:
    def test_two_participants_is_enough(self):
        validate_participant_order(["A", "B"])

    @pytest.mark.parametrize("order", [[], ["A"]])
    def test_too_few_participants(self, order):
        with pytest.raises(InvalidConfigurationError, match="at least 2"):
            validate_participant_order(order)

    def test_duplicates_rejected(self):
        with pytest.raises(InvalidConfigurationError, match="duplicates"):
            validate_participant_order(["A", "B", "A"])

    def test_empty_id_rejected(self):
        with pytest.raises(InvalidConfigurationError, match="empty id"):
            validate_participant_order(["A", ""])
