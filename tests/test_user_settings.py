"""Tests for user_settings.py — zone areas and manual targets."""

from user_settings import (
    default_settings, guideline_for_zone, normalize_settings, normalize_targets, total_area,
    zone_areas,
)


class TestNormalizeSettings:
    def test_defaults(self):
        settings = normalize_settings(None)
        assert settings == default_settings()
        assert settings['selected_guide'] == 'cool_season_bentgrass'
        assert len(settings['manual_targets']['fairway']) == 12

    def test_legacy_keys(self):
        settings = normalize_settings({
            'greenArea': 1200, 'fairwayGuideType': 'warm_season_zoysia', 'manualPlanMode': True,
        })
        assert settings['green_area'] == '1200'
        assert settings['fairway_guide'] == 'warm_season_zoysia'
        assert settings['manual_plan_mode'] is True

    def test_list_targets_become_green(self):
        targets = normalize_targets([{'N': '3.5', 'P': 1, 'K': -2}])
        assert targets['green'][0] == {'N': 3.5, 'P': 1.0, 'K': 0.0}
        assert len(targets['green']) == 12
        assert targets['tee'][0] == {'N': 0.0, 'P': 0.0, 'K': 0.0}

    def test_long_plan_truncated(self):
        targets = normalize_targets({'tee': [{'N': 1}] * 15})
        assert len(targets['tee']) == 12


class TestAreas:
    def test_zone_areas(self, settings):
        assert zone_areas(settings) == {'green': 1000.0, 'tee': 500.0, 'fairway': 20000.0}
        assert total_area(settings) == 21500.0

    def test_unparseable_area_is_zero(self):
        assert zone_areas({'green_area': 'abc', 'tee_area': '-5'})['green'] == 0.0
        assert zone_areas({'tee_area': '-5'})['tee'] == 0.0


class TestGuidelineForZone:
    def test_fairway_override(self):
        settings = normalize_settings({'selected_guide': 'cool_season_bentgrass',
                                       'fairway_guide': 'cool_season_kbg'})
        assert guideline_for_zone(settings, 'fairway') == 'cool_season_kbg'
        assert guideline_for_zone(settings, 'green') == 'cool_season_bentgrass'
        assert guideline_for_zone(settings) == 'cool_season_bentgrass'
