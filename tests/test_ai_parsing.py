"""Tests for model reply parsing: JSON first, regex fallback, never raising."""

import pytest

from domain_agent.ai.parsing import (
    BusinessName,
    DomainSuggestion,
    extract_actionable_items,
    extract_domain_names,
    load_json,
    parse_business_names,
    parse_domain_analysis,
    parse_domain_suggestions,
)


class TestLoadJson:
    def test_plain_json(self):
        assert load_json('[{"domain": "a.com"}]') == [{"domain": "a.com"}]

    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"a": 1}\n```\nEnjoy'
        assert load_json(text) == {"a": 1}

    @pytest.mark.parametrize("text", [None, "", "not json", "[{broken"])
    def test_invalid_returns_none(self, text):
        assert load_json(text) is None


class TestDomainSuggestions:
    def test_json_array(self):
        text = (
            '[{"domain": "BrandTest.com", "reasoning": "short", "brandabilityScore": 8.5, "extension": ".com"},'
            ' {"domain": "brand.io", "reasoning": "techy", "brandabilityScore": "9"}]'
        )
        suggestions = parse_domain_suggestions(text)
        assert [s.domain for s in suggestions] == ["brandtest.com", "brand.io"]
        assert suggestions[0].brandability_score == 8.5
        assert suggestions[1].brandability_score == 9.0
        assert suggestions[1].extension == ".io"

    def test_object_wrapper(self):
        suggestions = parse_domain_suggestions('{"suggestions": [{"domain": "x.net"}]}')
        assert suggestions[0].domain == "x.net"
        assert suggestions[0].brandability_score == 7

    def test_skips_entries_without_domain(self):
        suggestions = parse_domain_suggestions('[{"reasoning": "no domain"}, 5, {"domain": "ok.org"}]')
        assert [s.domain for s in suggestions] == ["ok.org"]

    def test_malformed_json_falls_back_to_regex(self):
        text = 'Sure! [{"domain": "shopfast.com", oops... also consider quickcart.io'
        suggestions = parse_domain_suggestions(text)
        assert [s.domain for s in suggestions] == ["shopfast.com", "quickcart.io"]
        assert all(isinstance(s, DomainSuggestion) for s in suggestions)
        assert suggestions[1].extension == ".io"

    @pytest.mark.parametrize("text", [None, "", "I cannot help with that", "{{{{"])
    def test_garbage_yields_empty_list(self, text):
        assert parse_domain_suggestions(text) == []


class TestDomainAnalysis:
    def test_json_scores(self):
        text = (
            '{"scores": {"brandability": 9, "memorability": 8, "seo": 6, "relevance": 7, "overall": 8},'
            ' "strengths": ["short"], "weaknesses": "hyphen", "alternatives": ["b.com"]}'
        )
        analysis = parse_domain_analysis("a.com", text)
        assert analysis.scores["brandability"] == 9
        assert analysis.scores["seo"] == 6
        assert analysis.strengths == ["short"]
        assert analysis.weaknesses == ["hyphen"]
        assert analysis.recommendations == ["b.com"]

    def test_flat_scores_and_missing_keys(self):
        analysis = parse_domain_analysis("a.com", '{"brandability": 5}')
        assert analysis.scores["brandability"] == 5
        assert analysis.scores["overall"] == 7

    def test_fallback_keeps_raw_text(self):
        analysis = parse_domain_analysis("a.com", "It is a fine domain.")
        assert set(analysis.scores.values()) == {7}
        assert analysis.analysis == "It is a fine domain."
        assert analysis.as_dict()["domain"] == "a.com"


class TestConsultationExtraction:
    def test_actionable_items(self):
        text = "Hello there.\nI recommend a short name.\nYou could Consider .io too.\nBye"
        assert extract_actionable_items(text) == [
            "I recommend a short name.",
            "You could Consider .io too.",
        ]

    def test_domain_names_are_unique_and_lowercase(self):
        text = "Try Brandly.com or brandly.com, maybe brandly.io"
        assert extract_domain_names(text) == ["brandly.com", "brandly.io"]

    def test_empty(self):
        assert extract_actionable_items(None) == []
        assert extract_domain_names("") == []


class TestBusinessNames:
    def test_json(self):
        names = parse_business_names('[{"name": "Brandly", "domain": "Brandly.com", "reasoning": "catchy"}]')
        assert names == [BusinessName(name="Brandly", domain="brandly.com", extension=".com", reasoning="catchy")]

    def test_text_fallback_with_colon_and_dash(self):
        text = (
            "Here are some ideas:\n"
            "1. Brandly: brandly.com\n"
            "* Quick Cart - quick-cart.net\n"
            "Not a name line\n"
        )
        names = parse_business_names(text)
        assert [(n.name, n.domain) for n in names] == [
            ("Brandly", "brandly.com"),
            ("Quick Cart", "quick-cart.net"),
        ]
        assert names[1].extension == ".net"

    def test_garbage_yields_empty_list(self):
        assert parse_business_names("```json\n{not valid\n```") == []
