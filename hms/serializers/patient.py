import bleach
from rest_framework import serializers


class PatientListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=100, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=['all', 'active', 'inactive'], required=False, default='all')
    branchId = serializers.IntegerField(min_value=1, required=False)
    sort = serializers.ChoiceField(choices=['name', 'email', 'createdAt', 'status'], required=False, default='createdAt')
    order = serializers.ChoiceField(choices=['asc', 'desc'], required=False, default='desc')
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200, default=20)
    hospitalId = serializers.IntegerField(min_value=1, required=False)


class PatientWriteSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=100)
    lastName = serializers.CharField(max_length=100, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    gender = serializers.CharField(max_length=16, required=False, allow_blank=True)
    bloodGroup = serializers.CharField(max_length=8, required=False, allow_blank=True)
    dateOfBirth = serializers.DateField(required=False, allow_null=True)
    address = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=['active', 'inactive'], required=False)
    defaultBranchId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    patientId = serializers.CharField(max_length=20, required=False, allow_blank=True)

    def validate_firstName(self, v):
        v = bleach.clean((v or '').strip(), tags=set(), strip=True)
        if not v:
            raise serializers.ValidationError('First name is required')
        return v

    def validate_lastName(self, v):
        return bleach.clean((v or '').strip(), tags=set(), strip=True)

    def validate_phone(self, v):
        return bleach.clean((v or '').strip(), tags=set(), strip=True)

    def validate_address(self, v):
        return bleach.clean((v or '').strip(), tags=set(), strip=True)
