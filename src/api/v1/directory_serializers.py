"""Serializers for subcontractors, vendors and prospects."""
from rest_framework import serializers

from directory.models import Prospect, Subcontractor, Vendor
from directory.services import clean_service_areas, compliance_docs_missing

_PAPERWORK_FIELDS = [
    'coi_status', 'coi_expiration_date', 'w9_status', 'ic_agreement_status',
    'requested_docs', 'docs_due_date', 'last_requested_date', 'last_received_date',
]


class _DirectoryEntrySerializer(serializers.ModelSerializer):
    missing_docs = serializers.SerializerMethodField()

    def validate_service_areas(self, value):
        try:
            return clean_service_areas(value)
        except ValueError as exc:
            raise serializers.ValidationError(str(exc))

    def get_missing_docs(self, obj):
        return compliance_docs_missing(obj)


class SubcontractorSerializer(_DirectoryEntrySerializer):
    class Meta:
        model = Subcontractor
        fields = [
            'id', 'company_name', 'primary_contact_name', 'phone', 'email',
            'trade_type', 'service_areas', 'status', 'internal_rating', 'notes',
            *_PAPERWORK_FIELDS,
            'missing_docs', 'is_approved', 'approved_by', 'approved_at',
            'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'missing_docs', 'is_approved', 'approved_by', 'approved_at',
            'created_by', 'created_at', 'updated_at',
        ]


class VendorSerializer(_DirectoryEntrySerializer):
    class Meta:
        model = Vendor
        fields = [
            'id', 'vendor_name', 'vendor_type', 'primary_contact_name', 'phone', 'email',
            'preferred_contact_method', 'website', 'account_number',
            'service_areas', 'status', 'notes',
            *_PAPERWORK_FIELDS,
            'missing_docs', 'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'missing_docs', 'created_by', 'created_at', 'updated_at']


class ProspectSerializer(serializers.ModelSerializer):
    assigned_owner_name = serializers.CharField(source='assigned_owner.display_name', read_only=True, default=None)

    class Meta:
        model = Prospect
        fields = [
            'id', 'company_name', 'contact_name', 'phone', 'email',
            'prospect_type', 'trade_vendor_type', 'source', 'stage',
            'next_followup_date', 'assigned_owner', 'assigned_owner_name', 'notes',
            'converted_subcontractor', 'converted_vendor',
            'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'assigned_owner_name', 'converted_subcontractor', 'converted_vendor',
            'created_by', 'created_at', 'updated_at',
        ]
