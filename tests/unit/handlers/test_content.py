"""
Unit tests for email body normalization.
"""

from inbox_actions.email_processing.handlers.content import (
    ContentPreprocessor,
    html_to_text,
    looks_quoted_printable,
    normalize_email_body,
)


class TestNormalizeEmailBody:

    def test_plain_text_whitespace_and_typography(self):
        body = "Bonjour,\r\n\r\n\r\n\r\nPeux-tu   m’envoyer le devis ?"
        assert normalize_email_body(body) == "Bonjour,\n\nPeux-tu m'envoyer le devis ?"

    def test_html_blocks_become_lines(self):
        body = (
            "<html><head><title>Sujet</title></head><body>"
            "<p>Bonjour</p><p>Merci de valider le devis.</p>"
            "<script>track()</script></body></html>"
        )
        lines = [line for line in normalize_email_body(body, "text/html").split("\n") if line]

        assert lines == ["Bonjour", "Merci de valider le devis."]

    def test_html_detected_without_mime_type(self):
        assert normalize_email_body("<div>Appelle Paul</div><div>Merci</div>") == "Appelle Paul\n\nMerci"

    def test_entities_are_decoded(self):
        assert normalize_email_body("Caf&eacute; &amp; th&eacute;", "text/plain") == "Café & thé"

    def test_quoted_printable(self):
        body = "Merci de valider le devis pour la r=C3=A9union=\n de demain =C3=A0 10h =3D ok"
        assert looks_quoted_printable(body)
        assert normalize_email_body(body) == "Merci de valider le devis pour la réunion de demain à 10h = ok"

    def test_empty(self):
        assert normalize_email_body(None) == ""
        assert normalize_email_body("") == ""


class TestContentPreprocessor:

    def test_truncation(self):
        result = ContentPreprocessor(max_chars=10).preprocess_content("a" * 50)

        assert result.content == "a" * 10
        assert result.processing_stats["truncated"] is True
        assert result.processing_stats["original_length"] == 50

    def test_metadata_reports_html(self):
        result = ContentPreprocessor().preprocess_content("<p>Bonjour</p>")
        assert result.metadata["mime_type"] == "text/html"
        assert result.processing_stats["html"] is True

    def test_html_to_text_drops_styles(self):
        text = html_to_text("<style>p {color: red}</style><p>Texte</p>")
        assert "color" not in text
        assert "Texte" in text
