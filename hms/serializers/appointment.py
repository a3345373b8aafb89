import bleach
from rest_framework import serializers


class AppointmentListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=100, required=False, allow_blank=True)
    doctorId = serializers.IntegerField(min_value=1, required=False)
    branchId = serializers.IntegerField(min_value=1, required=False)
    timeRange = serializers.ChoiceField(choices=['all', 'today', 'last10', 'month', 'year'], required=False, default='all')
    status = serializers.ChoiceField(
        choices=['all', 'confirmed', 'completed', 'cancelled', 'not_attended', 'pending', 'rescheduled'],
        required=False, default='all',
    )
    sort = serializers.ChoiceField(
        choices=['patientName', 'doctorName', 'appointmentDate', 'status', 'createdAt', 'branch'],
        required=False, default='createdAt',
    )
    order = serializers.ChoiceField(choices=['asc', 'desc'], required=False, default='desc')
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200, default=20)
    hospitalId = serializers.IntegerField(min_value=1, required=False)


class TestReminderSerializer(serializers.Serializer):
    appointmentId = serializers.IntegerField(min_value=1)


class AppointmentCreateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    doctorId = serializers.IntegerField(min_value=1)
    branchId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    appointmentDate = serializers.DateField()
    appointmentTime = serializers.CharField(max_length=16)
    chiefComplaint = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=['confirmed', 'pending'], required=False, default='confirmed')

    def validate_chiefComplaint(self, v):
        return bleach.clean((v or '').strip(), tags=set(), strip=True)


class RescheduleSerializer(serializers.Serializer):
    appointmentDate = serializers.DateField()
    appointmentTime = serializers.CharField(max_length=16)
    doctorId = serializers.IntegerField(min_value=1, required=False)


class SlotQuerySerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1)
    date = serializers.DateField()
    time = serializers.CharField(max_length=16)
    excludeId = serializers.IntegerField(min_value=1, required=False)
    hospitalId = serializers.IntegerField(min_value=1, required=False)
