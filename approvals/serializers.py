"""
DRF serializers for approvals request bodies.
"""
from rest_framework import serializers

from .entities import EntityType
from .selection import BulkAction, Severity


class SelectionKeyField(serializers.ListField):
    """A ``[type, id]`` pair."""

    def __init__(self, **kwargs):
        kwargs.setdefault('child', serializers.CharField())
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        values = super().to_internal_value(data)
        if len(values) != 2:
            raise serializers.ValidationError('Expected a [type, id] pair.')
        entity_type, entity_id = values
        if EntityType.parse(entity_type) is None:
            raise serializers.ValidationError(f'Unknown entity type: {entity_type}')
        return (entity_type, entity_id)


class SelectionSerializer(serializers.Serializer):
    """Checkbox changes for one dashboard's selection."""
    OPERATIONS = ('toggle', 'add', 'remove', 'select_page', 'clear')
    WITHOUT_KEYS = ('select_page', 'clear')

    op = serializers.ChoiceField(choices=OPERATIONS)
    keys = serializers.ListField(child=SelectionKeyField(), default=list)

    def validate(self, attrs):
        if attrs['op'] not in self.WITHOUT_KEYS and not attrs.get('keys'):
            raise serializers.ValidationError({'keys': 'At least one item is required.'})
        return attrs


class BulkActionSerializer(serializers.Serializer):
    # Reason presence is checked by the coordinator, per action
    action = serializers.ChoiceField(choices=[a.value for a in BulkAction])
    reason = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    severity = serializers.ChoiceField(
        choices=[s.value for s in Severity], required=False, allow_null=True
    )
    notes = serializers.CharField(required=False, allow_blank=True)


class VerificationToggleSerializer(serializers.Serializer):
    isVerified = serializers.BooleanField()
    reason = serializers.CharField(allow_blank=True, default='')


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True, default='')
