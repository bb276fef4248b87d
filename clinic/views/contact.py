import logging

from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle

from clinic.models import ContactMessage
from clinic.serializers.contact import ContactSerializer
from clinic.services.audit import client_ip

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def contact_send_view(request):
    s = ContactSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    msg = ContactMessage.objects.create(ip=client_ip(request), **s.validated_data)
    logger.info('Contact message %s from %s', msg.id, msg.email)
    return Response({'ok': True, 'data': {'id': msg.id},
                     'message': 'Mensaje enviado. Nos pondremos en contacto pronto.'}, status=201)

contact_send_view.cls.throttle_scope = 'contact'
