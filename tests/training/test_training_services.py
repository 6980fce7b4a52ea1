import os

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from core.models import AuditLog
from training.models import TrainingCategory, TrainingDocument, training_upload_to
from training.services import create_category, delete_document, upload_document, validate_upload


@pytest.fixture(autouse=True)
def _media_root(settings, tmp_path):
    settings.MEDIA_ROOT = str(tmp_path)
    return tmp_path


def pdf(name="Roof Inspection Checklist.pdf", content=b"%PDF-1.4 checklist"):
    return SimpleUploadedFile(name, content, content_type="application/pdf")


def test_upload_path_uses_category_slug():
    category = TrainingCategory(pk=1, name="Sales", slug="sales")
    assert training_upload_to(TrainingDocument(category=category), "deck.pptx") == "training/sales/deck.pptx"
    assert training_upload_to(TrainingDocument(), "deck.pptx") == "training/uncategorized/deck.pptx"


@pytest.mark.parametrize("name", ["notes.txt", "script.exe", "noextension"])
def test_validate_upload_rejects_other_types(name):
    with pytest.raises(ValueError, match="cannot be uploaded"):
        validate_upload(SimpleUploadedFile(name, b"data"))


def test_validate_upload_enforces_size_limit(settings):
    settings.TRAINING_MAX_UPLOAD_MB = 1
    big = SimpleUploadedFile("walkthrough.MP4", b"x" * (1024 * 1024 + 1))
    with pytest.raises(ValueError, match="limit is 1 MB"):
        validate_upload(big)
    assert validate_upload(SimpleUploadedFile("walkthrough.MP4", b"x" * 1024)) == "mp4"


@pytest.mark.django_db
class TestCategories:
    def test_create_category(self, admin_user):
        category = create_category(actor=admin_user, name=" Safety Training ", sort_order=2)
        assert category.name == "Safety Training"
        assert category.slug == "safety-training"
        assert category.sort_order == 2

    def test_duplicate_category(self, admin_user):
        create_category(actor=admin_user, name="Sales")
        with pytest.raises(ValueError, match="already exists"):
            create_category(actor=admin_user, name="sales")

    def test_name_required(self, admin_user):
        with pytest.raises(ValueError, match="name is required"):
            create_category(actor=admin_user, name="")

    def test_manager_cannot_create(self, manager_user):
        with pytest.raises(PermissionError):
            create_category(actor=manager_user, name="Sales")


@pytest.mark.django_db
class TestDocuments:
    def test_upload(self, admin_user):
        category = create_category(actor=admin_user, name="Sales")
        document = upload_document(actor=admin_user, uploaded_file=pdf(), category=category, description="Use on every job")

        assert document.name == "Roof Inspection Checklist"
        assert document.file_type == "pdf"
        assert document.file_size == len(b"%PDF-1.4 checklist")
        assert document.uploaded_by == admin_user
        assert document.file.name.startswith("training/sales/")
        assert os.path.exists(document.file.path)

    def test_explicit_name_wins(self, admin_user):
        document = upload_document(actor=admin_user, uploaded_file=pdf(), name=" Inspection SOP ")
        assert document.name == "Inspection SOP"
        assert document.file.name.startswith("training/uncategorized/")

    def test_rejected_type_creates_nothing(self, admin_user):
        with pytest.raises(ValueError):
            upload_document(actor=admin_user, uploaded_file=SimpleUploadedFile("virus.exe", b"MZ"))
        assert not TrainingDocument.objects.exists()

    def test_rep_cannot_upload(self, rep_user):
        with pytest.raises(PermissionError):
            upload_document(actor=rep_user, uploaded_file=pdf())

    def test_delete_removes_file_after_commit(self, admin_user, django_capture_on_commit_callbacks):
        document = upload_document(actor=admin_user, uploaded_file=pdf())
        path = document.file.path
        pk = document.pk

        with django_capture_on_commit_callbacks(execute=True):
            delete_document(document, actor=admin_user)

        assert not TrainingDocument.objects.filter(pk=pk).exists()
        assert not os.path.exists(path)
        assert AuditLog.objects.filter(action="training_document.delete", entity_id=str(pk)).exists()
