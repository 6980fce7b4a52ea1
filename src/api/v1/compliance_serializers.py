"""Serializers for SOP acknowledgments, holds, violations and escalations."""
from django.contrib.auth import get_user_model
from rest_framework import serializers

from compliance.models import (
    ComplianceAuditLog,
    ComplianceEscalation,
    ComplianceHold,
    ComplianceViolation,
    SOPAcknowledgment,
)

User = get_user_model()


class SOPAcknowledgmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = SOPAcknowledgment
        fields = ['id', 'user', 'sop_key', 'version', 'acknowledgment_method', 'acknowledged_at']
        read_only_fields = fields


class AcknowledgeSOPSerializer(serializers.Serializer):
    method = serializers.ChoiceField(
        choices=SOPAcknowledgment.Method.choices,
        default=SOPAcknowledgment.Method.CHECKBOX,
    )


class AcknowledgeMasterSOPSerializer(serializers.Serializer):
    sop_number = serializers.IntegerField()


class ComplianceHoldSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.display_name', read_only=True, default=None)
    hold_type_label = serializers.CharField(source='get_hold_type_display', read_only=True)

    class Meta:
        model = ComplianceHold
        fields = [
            'id', 'hold_type', 'hold_type_label', 'status', 'user', 'user_name',
            'job_id', 'reason', 'violation', 'created_by',
            'released_by', 'released_at', 'release_notes', 'created_at',
        ]
        read_only_fields = [
            'id', 'hold_type_label', 'status', 'user_name', 'created_by',
            'released_by', 'released_at', 'release_notes', 'created_at',
        ]


class HoldCheckSerializer(serializers.Serializer):
    hold_type = serializers.ChoiceField(choices=ComplianceHold.HoldType.choices)
    job_id = serializers.CharField(required=False, allow_blank=True, default='')
    user = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), required=False, allow_null=True)


class ViolationSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.display_name', read_only=True, default=None)

    class Meta:
        model = ComplianceViolation
        fields = [
            'id', 'violation_type', 'severity', 'sop_key', 'status',
            'user', 'user_name', 'job_id', 'description',
            'detected_by', 'resolved_by', 'resolved_at', 'resolution_notes',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'status', 'user_name', 'detected_by', 'resolved_by',
            'resolved_at', 'resolution_notes', 'created_at', 'updated_at',
        ]


class EscalationSerializer(serializers.ModelSerializer):
    violation_type = serializers.CharField(source='violation.violation_type', read_only=True)

    class Meta:
        model = ComplianceEscalation
        fields = [
            'id', 'violation', 'violation_type', 'status', 'escalated_by', 'escalated_to',
            'notes', 'resolved_at', 'resolution_notes', 'created_at',
        ]
        read_only_fields = fields


class EscalateSerializer(serializers.Serializer):
    escalated_to = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class NotesSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ComplianceAuditLogSerializer(serializers.ModelSerializer):
    actor_name = serializers.CharField(source='actor.display_name', read_only=True, default=None)

    class Meta:
        model = ComplianceAuditLog
        fields = ['id', 'actor', 'actor_name', 'action', 'target_type', 'target_id', 'metadata', 'created_at']
        read_only_fields = fields
