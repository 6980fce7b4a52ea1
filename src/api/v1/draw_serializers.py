"""Serializers for commission draws (advances against future commission)."""
from rest_framework import serializers

from draws.models import Draw, DrawApplication, DrawSetting


class DrawApplicationSerializer(serializers.ModelSerializer):
    job_number = serializers.CharField(source='submission.job_number', read_only=True, default=None)

    class Meta:
        model = DrawApplication
        fields = [
            'id', 'draw', 'submission', 'job_number', 'amount',
            'balance_before', 'balance_after', 'applied_by', 'notes', 'applied_at',
        ]
        read_only_fields = fields


class DrawSerializer(serializers.ModelSerializer):
    requested_by_name = serializers.CharField(source='requested_by.display_name', read_only=True)
    applications = DrawApplicationSerializer(many=True, read_only=True)

    class Meta:
        model = Draw
        fields = [
            'id', 'requested_by', 'requested_by_name', 'job_number', 'job_name',
            'amount', 'estimated_commission', 'remaining_balance',
            'requires_manager_approval', 'status', 'notes',
            'approved_by', 'approved_at', 'denied_by', 'denied_at', 'denial_reason',
            'paid_by', 'paid_at', 'deducted_at', 'applications',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class DrawRequestSerializer(serializers.Serializer):
    job_number = serializers.RegexField(r'^\d{4}$', error_messages={'invalid': 'Job number must be exactly 4 digits.'})
    job_name = serializers.CharField(required=False, allow_blank=True, default='')
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    estimated_commission = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class DrawDenySerializer(serializers.Serializer):
    reason = serializers.CharField()


class DrawDeductionSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class DrawSettingUpdateSerializer(serializers.Serializer):
    key = serializers.ChoiceField(choices=[
        DrawSetting.MANAGER_APPROVAL_THRESHOLD,
        DrawSetting.MAX_COMMISSION_RATIO,
    ])
    value = serializers.DecimalField(max_digits=12, decimal_places=4)
