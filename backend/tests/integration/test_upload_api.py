"""Integration tests for POST /api/upload"""

import json

import pytest


UPLOAD_URL = "/api/upload"


@pytest.fixture
def pdf_part(pdf_bytes):
    return ("postcard", ("Meine Karte.pdf", pdf_bytes, "application/pdf"))


class TestUploadSuccess:
    """Test accepted submissions"""

    def test_postcard_only(self, client, store_root, form_data, pdf_part):
        """Test a minimal valid submission is stored"""
        response = client.post(UPLOAD_URL, data=form_data(), files=[pdf_part])

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert len(body["ref"]) == 8
        assert body["files"]["postcard"].startswith("Meine_Karte_")
        assert body["files"]["postcard"].endswith(".pdf")
        assert body["files"]["images"] == []

        meta_files = list(store_root.glob(f"*/{body['ref']}/meta.json"))
        assert len(meta_files) == 1
        document = json.loads(meta_files[0].read_text(encoding="utf-8"))
        assert document["status"] == "received"
        assert document["consent"] is True
        assert document["fields"]["email"] == "ada@example.org"
        assert document["fields"]["role"] == "Outgoing"

    def test_with_images(self, client, form_data, pdf_part, jpeg_bytes, png_bytes):
        """Test images are stored in submission order"""
        files = [
            pdf_part,
            ("images", ("eins.jpg", jpeg_bytes, "image/jpeg")),
            ("images", ("zwei.png", png_bytes, "image/png")),
        ]
        response = client.post(UPLOAD_URL, data=form_data(), files=files)

        assert response.status_code == 200
        images = response.json()["files"]["images"]
        assert len(images) == 2
        assert images[0].startswith("eins_")
        assert images[1].startswith("zwei_")

    def test_optional_fields_omitted(self, client, store_root, form_data, pdf_part):
        """Test blank optional fields are left out of the metadata"""
        data = form_data(faculty="", location="  ", term=None, message="")
        response = client.post(UPLOAD_URL, data=data, files=[pdf_part])

        assert response.status_code == 200
        ref = response.json()["ref"]
        document = json.loads(next(store_root.glob(f"*/{ref}/meta.json")).read_text(encoding="utf-8"))
        assert "faculty" not in document["fields"]
        assert "location" not in document["fields"]
        assert "message" not in document["fields"]

    def test_status_lookup_after_upload(self, client, form_data, pdf_part):
        """Test a fresh reference is immediately visible (read-your-writes)"""
        ref = client.post(UPLOAD_URL, data=form_data(), files=[pdf_part]).json()["ref"]

        response = client.get(f"/api/status/{ref}")

        assert response.status_code == 200
        assert response.json()["status"] == "received"


class TestUploadRejections:
    """Test refused submissions leave nothing behind"""

    def _assert_rejected(self, response, status_code, store_root, message=None):
        assert response.status_code == status_code
        body = response.json()
        assert body["ok"] is False
        if message is not None:
            assert body["message"] == message
        assert list(store_root.glob("*/*/meta.json")) == []

    def test_missing_postcard(self, client, store_root, form_data):
        response = client.post(UPLOAD_URL, data=form_data(), files=[("other", ("x.txt", b"x", "text/plain"))])
        self._assert_rejected(response, 400, store_root, "A PDF file is required.")

    def test_missing_consent(self, client, store_root, form_data, pdf_part):
        response = client.post(UPLOAD_URL, data=form_data(agree=None), files=[pdf_part])
        self._assert_rejected(response, 400, store_root, "Consent is required.")

    def test_invalid_email(self, client, store_root, form_data, pdf_part):
        response = client.post(UPLOAD_URL, data=form_data(email="not-an-email"), files=[pdf_part])
        self._assert_rejected(response, 400, store_root, "Please provide a valid email address.")

    def test_blank_name(self, client, store_root, form_data, pdf_part):
        response = client.post(UPLOAD_URL, data=form_data(fullName="   "), files=[pdf_part])
        self._assert_rejected(response, 400, store_root, "Full name is required.")

    def test_missing_name(self, client, store_root, form_data, pdf_part):
        response = client.post(UPLOAD_URL, data=form_data(fullName=None), files=[pdf_part])
        self._assert_rejected(response, 400, store_root, "Full name is required.")

    def test_unknown_faculty(self, client, store_root, form_data, pdf_part):
        response = client.post(UPLOAD_URL, data=form_data(faculty="Astrologie"), files=[pdf_part])
        self._assert_rejected(response, 400, store_root, "Invalid faculty.")

    def test_postcard_wrong_type(self, client, store_root, form_data, pdf_bytes):
        files = [("postcard", ("karte.png", pdf_bytes, "image/png"))]
        response = client.post(UPLOAD_URL, data=form_data(), files=files)
        self._assert_rejected(response, 415, store_root)

    def test_forged_postcard(self, client, store_root, form_data, jpeg_bytes):
        files = [("postcard", ("karte.pdf", jpeg_bytes, "application/pdf"))]
        response = client.post(UPLOAD_URL, data=form_data(), files=files)
        self._assert_rejected(response, 415, store_root, "The PDF file is invalid or damaged.")

    def test_forged_image(self, client, store_root, form_data, pdf_part, png_bytes):
        files = [pdf_part, ("images", ("foto.jpg", png_bytes, "image/jpeg"))]
        response = client.post(UPLOAD_URL, data=form_data(), files=files)
        self._assert_rejected(response, 415, store_root, "Image file could not be verified.")

    def test_non_image_part(self, client, store_root, form_data, pdf_part):
        files = [pdf_part, ("images", ("notes.txt", b"hello", "text/plain"))]
        response = client.post(UPLOAD_URL, data=form_data(), files=files)
        self._assert_rejected(response, 400, store_root, "Images must use a valid image format.")

    def test_too_many_images(self, client, store_root, form_data, pdf_part, jpeg_bytes):
        files = [pdf_part] + [("images", (f"{i}.jpg", jpeg_bytes, "image/jpeg")) for i in range(6)]
        response = client.post(UPLOAD_URL, data=form_data(), files=files)
        self._assert_rejected(response, 400, store_root, "At most 5 images are allowed.")

    def test_total_size_exceeded(self, client, store_root, test_settings, form_data, pdf_bytes, jpeg_bytes):
        """Test individually valid files above the total limit give 413"""
        test_settings.MAX_TOTAL_SIZE = len(pdf_bytes) + len(jpeg_bytes) - 1
        files = [
            ("postcard", ("karte.pdf", pdf_bytes, "application/pdf")),
            ("images", ("foto.jpg", jpeg_bytes, "image/jpeg")),
        ]
        response = client.post(UPLOAD_URL, data=form_data(), files=files)
        self._assert_rejected(response, 413, store_root)
