from rest_framework import serializers


class CampaignListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['all', 'draft', 'published'], required=False, default='all')
    q = serializers.CharField(max_length=100, required=False, allow_blank=True)
    hospitalId = serializers.IntegerField(min_value=1, required=False)


class CampaignWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    slug = serializers.CharField(max_length=255, required=False, allow_blank=True)
    content = serializers.CharField(required=False, allow_blank=True)
    imageUrl = serializers.URLField(max_length=500, required=False, allow_blank=True)
    ctaText = serializers.CharField(max_length=100, required=False, allow_blank=True)
    ctaHref = serializers.CharField(max_length=500, required=False, allow_blank=True)
    audience = serializers.ChoiceField(choices=['all', 'patients', 'doctors'], required=False)
    status = serializers.ChoiceField(choices=['draft', 'published'], required=False)
    priority = serializers.IntegerField(required=False)
    startAt = serializers.DateTimeField(required=False, allow_null=True)
    endAt = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        start, end = attrs.get('startAt'), attrs.get('endAt')
        if start and end and end < start:
            raise serializers.ValidationError({'endAt': 'endAt must be after startAt'})
        return attrs


class PublishedQuerySerializer(serializers.Serializer):
    audience = serializers.ChoiceField(choices=['all', 'patients', 'doctors'], required=False, default='all')
    hospitalId = serializers.IntegerField(min_value=1, required=False)


class GenerateCampaignsSerializer(serializers.Serializer):
    check = serializers.ChoiceField(choices=['today', 'tomorrow'], required=False, default='today')
    publish = serializers.BooleanField(required=False, default=True)
    sendWhatsApp = serializers.BooleanField(required=False, default=False)
