import bleach
from rest_framework import serializers


def _clean(v):
    return bleach.clean((v or '').strip(), tags=set(), strip=True)


class HospitalCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    code = serializers.CharField(max_length=50)
    address = serializers.CharField()
    phone = serializers.CharField(max_length=32)
    email = serializers.EmailField()

    def validate_name(self, v):
        return _clean(v)

    def validate_code(self, v):
        return _clean(v)


class HospitalUpdateSerializer(HospitalCreateSerializer):
    status = serializers.ChoiceField(choices=['active', 'inactive', 'suspended'], required=False)

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('partial', True)
        super().__init__(*args, **kwargs)


class AdminCreateSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    hospitalId = serializers.IntegerField(min_value=1)
    firstName = serializers.CharField(max_length=150)
    lastName = serializers.CharField(max_length=150)

    def validate_firstName(self, v):
        return _clean(v)

    def validate_lastName(self, v):
        return _clean(v)


class AdminUpdateSerializer(serializers.Serializer):
    email = serializers.EmailField(required=False)
    password = serializers.CharField(min_length=6, required=False, allow_blank=True, write_only=True)
    hospitalId = serializers.IntegerField(min_value=1, required=False)
    firstName = serializers.CharField(max_length=150, required=False)
    lastName = serializers.CharField(max_length=150, required=False)

    def validate_firstName(self, v):
        return _clean(v)

    def validate_lastName(self, v):
        return _clean(v)
