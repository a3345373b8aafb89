from rest_framework import serializers


class LoginSerializer(serializers.Serializer):
    email = serializers.CharField(required=False)
    username = serializers.CharField(required=False)
    password = serializers.CharField()

    def validate(self, attrs):
        login = (attrs.get('email') or attrs.get('username') or '').strip()
        if not login:
            raise serializers.ValidationError({'email': 'Email is required'})
        attrs['login'] = login.lower()
        return attrs

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required')
        return v


class SwitchHospitalSerializer(serializers.Serializer):
    hospitalId = serializers.IntegerField(min_value=1)
