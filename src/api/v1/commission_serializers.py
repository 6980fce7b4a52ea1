"""Serializers for commission tiers, documents and submissions."""
from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework import serializers

from commissions.calculations import format_currency
from commissions.models import (
    CommissionDocument,
    CommissionRevisionLog,
    CommissionStatusLog,
    CommissionSubmission,
    CommissionTier,
    JobType,
    ManagerOverride,
    OverrideTracking,
    RoofType,
)

User = get_user_model()


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------

class CommissionTierSerializer(serializers.ModelSerializer):
    # Accepts a list or a comma separated string such as "10, 12.5, 15".
    allowed_op_percentages = serializers.JSONField(required=False)
    allowed_profit_splits = serializers.JSONField(required=False)
    assigned_users = serializers.IntegerField(source='assignments.count', read_only=True)

    class Meta:
        model = CommissionTier
        fields = [
            'id', 'name', 'description', 'allowed_op_percentages',
            'allowed_profit_splits', 'sort_order', 'is_active',
            'assigned_users', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'assigned_users', 'created_at', 'updated_at']
        # Uniqueness is checked case-insensitively by the service.
        extra_kwargs = {'name': {'validators': []}}


class AssignTierSerializer(serializers.Serializer):
    user = serializers.PrimaryKeyRelatedField(queryset=User.objects.all())
    tier = serializers.PrimaryKeyRelatedField(queryset=CommissionTier.objects.all(), allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

class CommissionDocumentSerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.display_name', read_only=True)
    tier_name = serializers.CharField(source='tier.name', read_only=True, default=None)

    class Meta:
        model = CommissionDocument
        fields = [
            'id', 'job_name_id', 'job_date', 'sales_rep', 'job_type', 'roof_type',
            'gross_contract_total', 'op_percent', 'material_cost', 'labor_cost',
            'neg_exp_1', 'neg_exp_2', 'neg_exp_3', 'supplement_fees_expense',
            'pos_exp_1', 'pos_exp_2', 'pos_exp_3', 'pos_exp_4',
            'rep_profit_percent', 'advance_total',
            'op_amount', 'contract_total_net', 'net_profit', 'rep_commission',
            'company_profit', 'margin', 'tier_drops', 'applied_rep_profit_percent',
            'status', 'notes', 'reviewer_notes',
            'created_by', 'created_by_name', 'tier', 'tier_name',
            'submitted_at', 'approved_by', 'approved_at', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'op_amount', 'contract_total_net', 'net_profit', 'rep_commission',
            'company_profit', 'margin', 'tier_drops', 'applied_rep_profit_percent',
            'status', 'reviewer_notes', 'created_by', 'created_by_name', 'tier',
            'tier_name', 'submitted_at', 'approved_by', 'approved_at',
            'created_at', 'updated_at',
        ]


class DocumentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=CommissionDocument.Status.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class DocumentPreviewSerializer(serializers.Serializer):
    """Unsaved inputs for a live calculation on the document form."""

    gross_contract_total = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    op_percent = serializers.DecimalField(max_digits=6, decimal_places=4, default=Decimal('0'))
    material_cost = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    labor_cost = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    neg_exp_1 = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    neg_exp_2 = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    neg_exp_3 = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    supplement_fees_expense = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    pos_exp_1 = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    pos_exp_2 = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    pos_exp_3 = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    pos_exp_4 = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    rep_profit_percent = serializers.DecimalField(max_digits=6, decimal_places=4, default=Decimal('0'))
    advance_total = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    job_type = serializers.ChoiceField(choices=JobType.choices, default=JobType.INSURANCE)
    roof_type = serializers.ChoiceField(choices=RoofType.choices, default=RoofType.SHINGLE)


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------

class CommissionStatusLogSerializer(serializers.ModelSerializer):
    changed_by_name = serializers.CharField(source='changed_by.display_name', read_only=True, default=None)

    class Meta:
        model = CommissionStatusLog
        fields = [
            'id', 'from_status', 'to_status', 'from_stage', 'to_stage',
            'changed_by', 'changed_by_name', 'notes', 'created_at',
        ]
        read_only_fields = fields


class CommissionRevisionLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionRevisionLog
        fields = ['id', 'revision_number', 'reason', 'requested_by', 'resubmitted_at', 'created_at']
        read_only_fields = fields


class CommissionSubmissionSerializer(serializers.ModelSerializer):
    """Read serializer; writes go through ``CommissionSubmissionInputSerializer``."""

    submitted_by_name = serializers.CharField(source='submitted_by.display_name', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    stage_label = serializers.CharField(source='get_approval_stage_display', read_only=True)
    payable_display = serializers.SerializerMethodField()

    class Meta:
        model = CommissionSubmission
        fields = [
            'id', 'job_number', 'job_name', 'job_address', 'job_type', 'roof_type',
            'submission_type', 'rep_role', 'subcontractor_name', 'sales_rep_name',
            'contract_date', 'install_completion_date', 'document',
            'contract_amount', 'supplements_approved', 'commission_percentage',
            'is_flat_fee', 'flat_fee_amount', 'advances_paid',
            'total_job_revenue', 'gross_commission', 'net_commission_owed',
            'commission_requested', 'commission_approved', 'payable_display',
            'status', 'status_label', 'approval_stage', 'stage_label',
            'is_manager_submission', 'revision_count', 'was_rejected',
            'rejection_reason', 'reviewer_notes',
            'submitted_by', 'submitted_by_name',
            'manager_approved_by', 'manager_approved_at',
            'accounting_approved_by', 'accounting_approved_at',
            'admin_approved_by', 'admin_approved_at',
            'approved_by', 'approved_at', 'denied_by', 'denied_at',
            'paid_by', 'paid_at', 'scheduled_pay_date',
            'override_amount', 'override_commission_number', 'override_manager',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_payable_display(self, obj):
        return format_currency(obj.payable_amount)


class CommissionSubmissionDetailSerializer(CommissionSubmissionSerializer):
    status_logs = CommissionStatusLogSerializer(many=True, read_only=True)
    revision_logs = CommissionRevisionLogSerializer(many=True, read_only=True)

    class Meta(CommissionSubmissionSerializer.Meta):
        fields = CommissionSubmissionSerializer.Meta.fields + ['status_logs', 'revision_logs']
        read_only_fields = fields


class CommissionSubmissionInputSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionSubmission
        fields = [
            'job_number', 'job_name', 'job_address', 'job_type', 'roof_type',
            'submission_type', 'rep_role', 'subcontractor_name', 'sales_rep_name',
            'contract_date', 'install_completion_date', 'document',
            'contract_amount', 'supplements_approved', 'commission_percentage',
            'is_flat_fee', 'flat_fee_amount', 'advances_paid', 'commission_requested',
        ]

    def validate(self, attrs):
        if attrs.get('is_flat_fee') and attrs.get('flat_fee_amount') is None:
            raise serializers.ValidationError({'flat_fee_amount': 'A flat fee amount is required.'})
        document = attrs.get('document')
        request = self.context.get('request')
        if document is not None and request is not None and document.created_by_id != request.user.pk:
            raise serializers.ValidationError({'document': 'You can only attach your own commission documents.'})
        return attrs


class ApproveCommissionSerializer(serializers.Serializer):
    approved_amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField()


class AdjustOverrideSerializer(serializers.Serializer):
    sales_rep = serializers.PrimaryKeyRelatedField(queryset=User.objects.all())
    count = serializers.IntegerField(min_value=0)


class WorksheetPreviewSerializer(serializers.Serializer):
    contract_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    supplements_approved = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    commission_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal('0'), max_value=Decimal('100'), default=Decimal('0'),
    )
    advances_paid = serializers.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    flat_fee_amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)


class PayDatePreviewSerializer(serializers.Serializer):
    approved_at = serializers.DateTimeField(required=False)


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------

class OverrideTrackingSerializer(serializers.ModelSerializer):
    sales_rep_name = serializers.CharField(source='sales_rep.display_name', read_only=True)

    class Meta:
        model = OverrideTracking
        fields = ['id', 'sales_rep', 'sales_rep_name', 'approved_commission_count', 'override_phase_complete', 'updated_at']
        read_only_fields = fields


class ManagerOverrideSerializer(serializers.ModelSerializer):
    manager_name = serializers.CharField(source='manager.display_name', read_only=True)
    sales_rep_name = serializers.CharField(source='sales_rep.display_name', read_only=True)
    job_number = serializers.CharField(source='submission.job_number', read_only=True)

    class Meta:
        model = ManagerOverride
        fields = [
            'id', 'manager', 'manager_name', 'sales_rep', 'sales_rep_name',
            'submission', 'job_number', 'override_amount', 'commission_number',
            'status', 'paid_at', 'created_at',
        ]
        read_only_fields = fields
