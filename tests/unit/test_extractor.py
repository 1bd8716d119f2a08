"""Unit tests for sourcepreview.extractor."""

from __future__ import annotations

from sourcepreview.extractor import (
    Candidate,
    CandidateSource,
    collect_candidates,
    decode_html_entities,
    extract_preview,
    json_ld_description,
    meta_content_values,
    normalize_candidate,
)

# ---------------------------------------------------------------------------
# Candidate selection
# ---------------------------------------------------------------------------


class TestExtractPreview:
    def test_meta_description_beats_paragraph(self) -> None:
        html = (
            '<meta property="og:description" content="A great article about testing.">'
            "<p>Some body text.</p>"
        )
        assert extract_preview(html) == "A great article about testing."

    def test_json_ld_beats_short_paragraph(self) -> None:
        html = (
            '<script type="application/ld+json">{"description":"JSON-LD wins here"}</script>'
            "<p>Short text</p>"
        )
        assert extract_preview(html) == "JSON-LD wins here"

    def test_prefers_open_graph_over_plain_description(self) -> None:
        html = """
        <html>
          <head>
            <meta name="description" content="Fallback description text">
            <meta property="og:description" content="OpenGraph description should win.">
          </head>
        </html>
        """
        assert extract_preview(html) == "OpenGraph description should win."

    def test_long_paragraph_beats_very_short_meta(self) -> None:
        paragraph = (
            "OpenAI announced broader model availability and improved web search "
            "citation behavior in this detailed release update."
        )
        html = f"""
        <html>
          <head><meta name="description" content="Home"></head>
          <body><p>{paragraph}</p></body>
        </html>
        """
        assert extract_preview(html) == paragraph

    def test_falls_back_to_paragraph(self) -> None:
        html = "<html><body><p>First paragraph with useful article summary text.</p></body></html>"
        assert extract_preview(html) == "First paragraph with useful article summary text."

    def test_falls_back_to_title(self) -> None:
        html = "<html><head><title>  Only a   title </title></head><body></body></html>"
        assert extract_preview(html) == "Only a title"

    def test_paragraph_inside_script_is_ignored(self) -> None:
        html = '<script>var s = "<p>fake paragraph</p>";</script><p>Real paragraph</p>'
        assert extract_preview(html) == "Real paragraph"

    def test_paragraph_inside_style_is_ignored(self) -> None:
        html = "<style>p::before { content: '<p>nope</p>' }</style><p>Visible text</p>"
        assert extract_preview(html) == "Visible text"

    def test_no_candidates_returns_none(self) -> None:
        assert extract_preview("<html><body><div></div></body></html>") is None

    def test_empty_input_returns_none(self) -> None:
        assert extract_preview("") is None

    def test_whitespace_only_paragraph_is_not_a_candidate(self) -> None:
        assert extract_preview("<p>   &nbsp; </p>") is None

    def test_tie_goes_to_first_collected_candidate(self) -> None:
        # meta "description" (index 2): 572 + 10 + 8 = 590
        # JSON-LD:                      540 + 42 + 8 = 590
        meta_text = "m" * 10
        json_ld_text = "j" * 42
        html = (
            f'<meta name="description" content="{meta_text}">'
            f'<script type="application/ld+json">{{"description": "{json_ld_text}"}}</script>'
        )
        candidates = collect_candidates(html)
        assert [c.score for c in candidates] == [590, 590]
        assert extract_preview(html) == meta_text

    def test_nested_markup_in_paragraph_becomes_word_breaks(self) -> None:
        html = "<p>Read <a href='/x'>the <em>full</em> story</a><br>today</p>"
        assert extract_preview(html) == "Read the full story today"

    def test_truncated_document_still_yields_meta(self) -> None:
        html = (
            '<HTML><HEAD><META NAME="Description" CONTENT="Cut off mid-page summary.">'
            "<BODY><P>Unclosed"
        )
        assert meta_content_values(html)["description"] == "Cut off mid-page summary."
        assert extract_preview(html) == "Cut off mid-page summary."

    def test_long_text_is_truncated_with_ellipsis(self) -> None:
        html = f"<p>{'word ' * 200}</p>"
        preview = extract_preview(html)
        assert preview is not None
        assert len(preview) == 421
        assert preview.endswith("…")


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestCandidateScore:
    def test_meta_base_score_decreases_with_priority(self) -> None:
        assert Candidate("x", CandidateSource.META, meta_index=0).base_score == 620
        assert Candidate("x", CandidateSource.META, meta_index=4).base_score == 524

    def test_fixed_base_scores(self) -> None:
        assert Candidate("x", CandidateSource.JSON_LD).base_score == 540
        assert Candidate("x", CandidateSource.PARAGRAPH).base_score == 500
        assert Candidate("x", CandidateSource.TITLE).base_score == 180

    def test_length_and_density_are_capped(self) -> None:
        text = " ".join(["word"] * 100)  # 499 chars, 100 words
        candidate = Candidate(text, CandidateSource.PARAGRAPH)
        assert candidate.score == 500 + 420 + 120

    def test_density_counts_words(self) -> None:
        candidate = Candidate("two words", CandidateSource.TITLE)
        assert candidate.score == 180 + 9 + 16


# ---------------------------------------------------------------------------
# Meta tags
# ---------------------------------------------------------------------------


class TestMetaContentValues:
    def test_reads_property_name_and_itemprop(self) -> None:
        html = (
            '<meta property="og:description" content="from property">'
            '<meta name="Twitter:Description" content="from name">'
            '<meta itemprop="description" content="from itemprop">'
        )
        values = meta_content_values(html)
        assert values["og:description"] == "from property"
        assert values["twitter:description"] == "from name"
        assert values["description"] == "from itemprop"

    def test_first_tag_wins_per_key(self) -> None:
        html = (
            '<meta name="description" content="first">'
            '<meta name="description" content="second">'
        )
        assert meta_content_values(html)["description"] == "first"

    def test_single_quoted_and_unquoted_attributes(self) -> None:
        html = "<meta name=description content='Single quoted value'><meta property=og:title content=Bare>"
        values = meta_content_values(html)
        assert values["description"] == "Single quoted value"
        assert values["og:title"] == "Bare"

    def test_decodes_entities_and_strips_tags(self) -> None:
        html = (
            '<meta name="description" '
            'content="AI &amp; ML &quot;daily&quot; &lt;b&gt;summary&lt;/b&gt;">'
        )
        assert extract_preview(html) == 'AI & ML "daily" summary'

    def test_tag_without_content_is_skipped(self) -> None:
        html = '<meta name="description"><meta charset="utf-8">'
        assert meta_content_values(html) == {}


# ---------------------------------------------------------------------------
# JSON-LD
# ---------------------------------------------------------------------------


class TestJsonLd:
    def test_description_preferred_over_headline(self) -> None:
        html = """
        <script type="application/ld+json">
          {
            "@context": "https://schema.org",
            "@type": "NewsArticle",
            "headline": "Ignored headline",
            "description": "JSON-LD description should be used when meta tags are absent."
          }
        </script>
        """
        assert extract_preview(html) == "JSON-LD description should be used when meta tags are absent."

    def test_headline_used_when_description_missing(self) -> None:
        html = (
            "<script type='application/ld+json'>"
            '{"@type": "NewsArticle", "headline": "Headline fallback should be used."}'
            "</script>"
        )
        assert extract_preview(html) == "Headline fallback should be used."

    def test_searches_nested_objects_and_arrays(self) -> None:
        html = (
            '<script type="application/ld+json">'
            '{"@graph": [{"@type": "WebSite", "name": "Site"}, {"article": {"headline": "Nested headline"}}]}'
            "</script>"
        )
        assert json_ld_description(html) == "Nested headline"

    def test_invalid_block_is_skipped(self) -> None:
        html = (
            '<script type="application/ld+json">{not json</script>'
            '<script type="application/ld+json">{"description": "Second block"}</script>'
        )
        assert json_ld_description(html) == "Second block"

    def test_non_ld_script_is_ignored(self) -> None:
        html = '<script type="application/json">{"description": "Not JSON-LD"}</script>'
        assert json_ld_description(html) is None


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


class TestNormalizeCandidate:
    def test_none_stays_none(self) -> None:
        assert normalize_candidate(None) is None

    def test_collapses_whitespace(self) -> None:
        assert normalize_candidate("  a\n\tb   c ") == "a b c"

    def test_tags_become_spaces(self) -> None:
        assert normalize_candidate("one<br>two<span>three</span>") == "one two three"

    def test_custom_max_length(self) -> None:
        assert normalize_candidate("abcdef", max_length=3) == "abc…"


class TestDecodeHtmlEntities:
    def test_numeric_entities(self) -> None:
        assert decode_html_entities("Price &#36;199 and hex &#x26;") == "Price $199 and hex &"

    def test_named_entities(self) -> None:
        assert decode_html_entities("&ldquo;a&rdquo; &ndash; b&hellip;") == '"a" - b…'

    def test_double_encoded_ampersand_decodes_through(self) -> None:
        assert decode_html_entities("&amp;lt;") == "<"

    def test_out_of_range_reference_is_left_alone(self) -> None:
        assert decode_html_entities("&#x110000;") == "&#x110000;"
