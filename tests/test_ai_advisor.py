"""Tests for ai_advisor.py — reply parsing and OpenAI call handling."""

import datetime
import pytest
from unittest.mock import MagicMock, patch

from ai_advisor import (
    action_to_log_form, build_recommendation_prompt, chat_reply, extract_fertilizer_from_text,
    get_recommendation, parse_recommendation,
)
from guideline_comparator import compare_with_guideline
from prompts import CHAT_ERROR_MESSAGE, RECOMMENDATION_ERROR_MESSAGE


def _mock_client(content):
    client = MagicMock()
    client.chat.completions.create.return_value = MagicMock(
        choices=[MagicMock(message=MagicMock(content=content))])
    return client


# ── Reply parsing ──

class TestParseRecommendation:
    def test_fenced_block(self):
        text = ('Nitrogen is behind on greens.\n'
                '```json\n{"productName": "Green Slow 21-0-0", "targetArea": "그린", '
                '"rate": 20, "reason": "catch up N"}\n```')
        clean, action = parse_recommendation(text)
        assert clean == 'Nitrogen is behind on greens.'
        assert action == {'product_name': 'Green Slow 21-0-0', 'target_area': 'green',
                          'rate': 20.0, 'reason': 'catch up N'}

    def test_bare_block_with_rate_string(self):
        clean, action = parse_recommendation(
            'Try this: {"productName": "Liquid 10-0-0", "rate": "5ml/㎡"}')
        assert clean == 'Try this:'
        assert action['rate'] == 5.0
        assert action['target_area'] is None

    def test_no_block(self):
        assert parse_recommendation('All on track.') == ('All on track.', None)

    def test_malformed_json_kept_as_text(self):
        text = '```json\n{"productName": "x", rate: }\n```'
        clean, action = parse_recommendation(text)
        assert action is None
        assert clean == text

    @pytest.mark.parametrize('block', [
        '{"productName": "", "rate": 10}', '{"productName": "A", "rate": -1}',
        '{"productName": "A"}',
    ])
    def test_missing_fields(self, block):
        assert parse_recommendation(f'```json\n{block}\n```')[1] is None

    def test_empty(self):
        assert parse_recommendation('') == ('', None)


class TestActionToLogForm:
    def test_prefills_from_settings(self, catalog, settings):
        action = {'product_name': 'Green Slow 21-0-0', 'target_area': None, 'rate': 20.0,
                  'reason': 'r'}
        form = action_to_log_form(action, catalog, settings, today=datetime.date(2024, 4, 1))
        assert form['date'] == '2024-04-01'
        assert form['usage'] == 'green'
        assert form['area'] == 1000.0
        assert form['application_unit'] == 'g/㎡'
        assert form['preview']['total_cost'] == pytest.approx(30000.0)

    def test_unknown_product(self, catalog, settings):
        action = {'product_name': 'Mystery', 'target_area': 'green', 'rate': 1.0}
        assert action_to_log_form(action, catalog, settings) is None
        assert action_to_log_form(None, catalog, settings) is None


# ── OpenAI calls ──

class TestOpenAICalls:
    def test_prompt_includes_program(self, settings, sample_logs, catalog):
        comparison = compare_with_guideline(sample_logs, settings, '2024')
        prompt = build_recommendation_prompt(settings, comparison, sample_logs, catalog)
        assert '1000' in prompt
        assert 'Green Slow 21-0-0 (2x)' in prompt
        assert 'Fairway 16-2-12' in prompt

    def test_get_recommendation(self, settings, sample_logs, catalog):
        reply = 'Looks good.\n```json\n{"productName": "Fairway 16-2-12", "rate": 15}\n```'
        with patch('ai_advisor.get_client', return_value=_mock_client(reply)):
            result = get_recommendation(settings, sample_logs, catalog, year=2024)
        assert result['text'] == 'Looks good.'
        assert result['action']['product_name'] == 'Fairway 16-2-12'
        assert result['error'] is None

    def test_get_recommendation_failure(self, settings, sample_logs, catalog):
        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError('timeout')
        with patch('ai_advisor.get_client', return_value=client):
            result = get_recommendation(settings, sample_logs, catalog, year=2024)
        assert result == {'text': None, 'action': None, 'error': RECOMMENDATION_ERROR_MESSAGE}

    def test_chat_maps_roles(self):
        client = _mock_client('Mow higher in summer.')
        with patch('ai_advisor.get_client', return_value=client):
            reply = chat_reply([{'role': 'model', 'content': 'Hi'}, {'role': 'user', 'content': 'Q'}],
                               'How high?')
        assert reply == 'Mow higher in summer.'
        messages = client.chat.completions.create.call_args.kwargs['messages']
        assert [m['role'] for m in messages] == ['system', 'assistant', 'user', 'user']

    def test_chat_failure(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError('down')
        with patch('ai_advisor.get_client', return_value=client):
            assert chat_reply([], 'hello') == CHAT_ERROR_MESSAGE

    def test_extract_fertilizer(self):
        reply = '```json\n{"name": "Turf Pro", "usage": "그린", "N": 12, "price": 20000, "unit": "20kg"}\n```'
        with patch('ai_advisor.get_client', return_value=_mock_client(reply)):
            fert = extract_fertilizer_from_text('Turf Pro 12-0-0 20kg bag, 20,000 won')
        assert fert['name'] == 'Turf Pro'
        assert fert['usage'] == 'green'
        assert fert['N'] == 12.0

    def test_extract_fertilizer_no_json(self):
        with patch('ai_advisor.get_client', return_value=_mock_client('Sorry, no idea.')):
            assert extract_fertilizer_from_text('???') is None
        assert extract_fertilizer_from_text('   ') is None
