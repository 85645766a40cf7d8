# api/serializers.py
from rest_framework import serializers

from algorithms.blood_compatibility import BLOOD_GROUPS, get_compatible_recipients
from algorithms.directory import ALL, SORT_NAME_ASC, SORT_OPTIONS
from algorithms.eligibility import is_eligible, next_eligible_at, recovery_days_remaining
from donors.serializers import DonorSerializer


class DirectoryEntrySerializer(DonorSerializer):
    """
    Donor plus the computed fields the directory shows.
    Expects `now` (epoch ms) in the serializer context.
    """
    eligible = serializers.SerializerMethodField()
    recoveryDaysRemaining = serializers.SerializerMethodField()
    nextEligibleAt = serializers.SerializerMethodField()
    canDonateTo = serializers.SerializerMethodField()

    def get_eligible(self, obj):
        return is_eligible(obj, self.context.get('now'))

    def get_recoveryDaysRemaining(self, obj):
        return recovery_days_remaining(obj, self.context.get('now'))

    def get_nextEligibleAt(self, obj):
        return next_eligible_at(obj)

    def get_canDonateTo(self, obj):
        return get_compatible_recipients(obj.blood_group)


class DirectoryQuerySerializer(serializers.Serializer):
    """Query-string parameters of the donor list."""
    search = serializers.CharField(required=False, allow_blank=True, default='')
    blood_group = serializers.ChoiceField(choices=(ALL,) + BLOOD_GROUPS, required=False, default=ALL)
    group = serializers.CharField(required=False, default=ALL)
    sort = serializers.ChoiceField(choices=SORT_OPTIONS, required=False, default=SORT_NAME_ASC)


class GroupCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)


class AssistantQuestionSerializer(serializers.Serializer):
    question = serializers.CharField(max_length=2000)
