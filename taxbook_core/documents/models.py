# taxbook_core/documents/models.py
from django.db import models

from taxbook_core.common.models import OwnedModel


class DocumentStatus(models.TextChoices):
    REQUESTED = "requested", "Requested"
    UPLOADED = "uploaded", "Uploaded"
    REVIEWED = "reviewed", "Reviewed"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"


class DocumentType(models.TextChoices):
    W2 = "w2", "W-2"
    F1099_MISC = "1099_misc", "1099-MISC"
    F1099_NEC = "1099_nec", "1099-NEC"
    F1099_INT = "1099_int", "1099-INT"
    F1099_DIV = "1099_div", "1099-DIV"
    F1099_B = "1099_b", "1099-B"
    F1099_R = "1099_r", "1099-R"
    F1098 = "1098", "1098"
    PROPERTY_TAX = "property_tax", "Property Tax"
    CHARITABLE_DONATIONS = "charitable_donations", "Charitable Donations"
    MEDICAL_EXPENSES = "medical_expenses", "Medical Expenses"
    BUSINESS_EXPENSES = "business_expenses", "Business Expenses"
    PRIOR_RETURN = "prior_return", "Prior Return"
    ID_VERIFICATION = "id_verification", "ID Verification"
    OTHER = "other", "Other"


class Document(OwnedModel):
    """
    Tax document requested from a client and moved through intake review.
    """
    client_id = models.UUIDField(db_index=True)
    appointment = models.ForeignKey(
        "appointments.Appointment",
        on_delete=models.SET_NULL,
        related_name="documents",
        null=True,
        blank=True,
    )

    # not a choices field: allowed values are enforced by the Document rules
    document_type = models.CharField(max_length=32, db_index=True)
    file_url = models.URLField(max_length=1000, blank=True, default="")
    file_name = models.CharField(max_length=255, blank=True, default="")

    status = models.CharField(
        max_length=32,
        choices=DocumentStatus.choices,
        default=DocumentStatus.REQUESTED,
        db_index=True,
    )

    tax_year = models.PositiveSmallIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    rejection_reason = models.TextField(blank=True, default="")

    class Meta:
        db_table = "documents_document"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["client_id", "status"], name="doc_client_status_idx"),
            models.Index(fields=["user", "status"], name="doc_user_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Document {self.id} ({self.document_type}, {self.status})"
