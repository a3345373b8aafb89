import bleach
from rest_framework import serializers


def _clean(v):
    return bleach.clean((v or '').strip(), tags=set(), strip=True)


class DoctorWriteSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=100)
    lastName = serializers.CharField(max_length=100, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    specialization = serializers.CharField(max_length=255, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=['active', 'inactive'], required=False)

    def validate_firstName(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('First name is required')
        return v

    def validate_lastName(self, v):
        return _clean(v)

    def validate_specialization(self, v):
        return _clean(v)


class BranchWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    address = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=['active', 'inactive'], required=False)

    def validate_name(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Branch name is required')
        return v

    def validate_address(self, v):
        return _clean(v)


class DirectoryQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['all', 'active', 'inactive'], required=False, default='active')
    hospitalId = serializers.IntegerField(min_value=1, required=False)
