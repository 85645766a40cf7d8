# donors/serializers.py
"""
Shape translation between Donor/Group records and the two stored formats:
the application/local JSON shape (camelCase) and the hosted `people` /
`groups` table rows (snake_case columns).

Storage shapes are lossless: what is saved comes back unchanged. Length
limits and whitespace trimming only apply to user input
(DonorInputSerializer).
"""
import logging

from rest_framework import serializers

from algorithms.blood_compatibility import BLOOD_GROUPS
from .records import CloudConfig, Donor, Group, new_identifier

logger = logging.getLogger(__name__)


def _not_blank(value):
    if not value.strip():
        raise serializers.ValidationError("This field may not be blank.")
    return value


class EpochMillisField(serializers.IntegerField):
    """
    Milliseconds since the epoch. The hosted table stores a nullable
    numeric column, which may come back as a float or a numeric string.
    """

    def to_internal_value(self, data):
        if isinstance(data, float):
            data = int(data)
        elif isinstance(data, str) and data.strip():
            try:
                data = int(float(data))
            except ValueError:
                self.fail('invalid')
        return super().to_internal_value(data)


class DonorSerializer(serializers.Serializer):
    """
    Application shape, used for the local blob and backup documents
    """
    id = serializers.CharField(required=False, trim_whitespace=False)
    name = serializers.CharField(trim_whitespace=False)
    phoneNumber = serializers.CharField(source='phone_number', trim_whitespace=False)
    bloodGroup = serializers.ChoiceField(source='blood_group', choices=BLOOD_GROUPS)
    lastDonationDate = EpochMillisField(source='last_donation_date', required=False, allow_null=True, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    groupIds = serializers.ListField(
        source='group_ids', child=serializers.CharField(trim_whitespace=False), required=False,
    )
    location = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)

    def validate_name(self, value):
        return _not_blank(value)

    def validate_phoneNumber(self, value):
        return _not_blank(value)


class DonorInputSerializer(DonorSerializer):
    """
    Registration and edit form input: trimmed and length-limited
    """
    name = serializers.CharField(max_length=200)
    phoneNumber = serializers.CharField(source='phone_number', max_length=50)


class RemoteDonorSerializer(serializers.Serializer):
    """
    `people` table row. Column names differ from the application shape.
    """
    id = serializers.CharField(trim_whitespace=False)
    name = serializers.CharField(trim_whitespace=False)
    phone_number = serializers.CharField(trim_whitespace=False)
    blood_group = serializers.ChoiceField(choices=BLOOD_GROUPS)
    last_donation_date = EpochMillisField(required=False, allow_null=True, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    group_ids = serializers.ListField(
        child=serializers.CharField(trim_whitespace=False), required=False, allow_null=True,
    )
    location = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)

    def validate_name(self, value):
        return _not_blank(value)

    def validate_phone_number(self, value):
        return _not_blank(value)


class GroupSerializer(serializers.Serializer):
    """Same shape locally and in the `groups` table."""
    id = serializers.CharField(required=False, trim_whitespace=False)
    name = serializers.CharField(trim_whitespace=False)
    color = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate_name(self, value):
        return _not_blank(value)


class CloudConfigSerializer(serializers.Serializer):
    supabaseUrl = serializers.URLField(source='supabase_url', required=False, allow_blank=True, default='')
    supabaseKey = serializers.CharField(source='supabase_key', required=False, allow_blank=True, default='')
    active = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if attrs.get('active') and not (attrs.get('supabase_url') and attrs.get('supabase_key')):
            raise serializers.ValidationError("An active cloud configuration needs both URL and key.")
        return attrs


class ImportDocumentSerializer(serializers.Serializer):
    people = DonorSerializer(many=True, required=False)
    groups = GroupSerializer(many=True, required=False)


# ---------------------------
# Record helpers
# ---------------------------
def donor_from_validated(attrs, donor_id=None):
    attrs = dict(attrs)
    attrs['id'] = donor_id or attrs.get('id') or new_identifier()
    attrs['notes'] = attrs.get('notes') or ''
    attrs['group_ids'] = list(attrs.get('group_ids') or [])
    return Donor(**attrs)


def donor_from_data(data, donor_id=None):
    """
    Validate user input in the application shape and build a Donor.
    Raises ValidationError before anything is persisted.
    """
    serializer = DonorInputSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    return donor_from_validated(serializer.validated_data, donor_id)


def donor_from_stored(data):
    serializer = DonorSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    return donor_from_validated(serializer.validated_data)


def donor_to_data(donor):
    return dict(DonorSerializer(donor).data)


def donor_from_row(row):
    serializer = RemoteDonorSerializer(data=row)
    serializer.is_valid(raise_exception=True)
    return donor_from_validated(serializer.validated_data)


def donor_to_row(donor):
    return dict(RemoteDonorSerializer(donor).data)


def group_from_data(data, group_id=None, color=''):
    serializer = GroupSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    attrs = serializer.validated_data
    return Group(
        id=group_id or attrs.get('id') or new_identifier(),
        name=attrs['name'],
        color=attrs.get('color') or color,
    )


def group_to_data(group):
    return dict(GroupSerializer(group).data)


def cloud_config_from_data(data):
    serializer = CloudConfigSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    return CloudConfig(**serializer.validated_data)


def cloud_config_to_data(config):
    return dict(CloudConfigSerializer(config).data)


def parse_entries(entries, build, label):
    """
    Build records from local blob entries, skipping (and logging) bad ones
    """
    records = []
    for index, entry in enumerate(entries or []):
        try:
            records.append(build(entry))
        except (serializers.ValidationError, TypeError) as e:
            logger.warning(f"Skipping malformed {label} entry #{index}: {e}")
    return records
