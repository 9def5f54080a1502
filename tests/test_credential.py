"""
Tests for credential rendering.
"""

from datetime import date, datetime

from affiliates.models import AffiliateRecord
from affiliates.services.credential import credential_filename, render_credential


def make_record(**overrides) -> AffiliateRecord:
    data = dict(
        id=1,
        national_id="30111222",
        member_number="1001",
        full_name="Juan Pérez",
        category="Activo",
        admission_date=date(2020, 5, 1),
    )
    data.update(overrides)
    return AffiliateRecord(**data)


class TestRenderCredential:

    def test_produces_pdf(self):
        pdf = render_credential(make_record(), generated_at=datetime(2025, 3, 1))

        assert pdf.startswith(b"%PDF")
        assert pdf.rstrip().endswith(b"%%EOF")

    def test_without_optional_fields(self):
        pdf = render_credential(make_record(category=None, admission_date=None))

        assert pdf.startswith(b"%PDF")

    def test_custom_organization(self):
        pdf = render_credential(make_record(), organization="Mutual de Prueba")

        assert len(pdf) > 0


class TestCredentialFilename:

    def test_uses_national_id(self):
        assert credential_filename(make_record()) == "credencial_30111222.pdf"
