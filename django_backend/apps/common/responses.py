"""
Uniform ``{success, data, message}`` response envelope.

Views either return :func:`envelope` directly (when they have a message to
attach) or plain serializer data, which :class:`EnvelopeJSONRenderer` wraps
on the way out. Error bodies are shaped by
:func:`apps.common.exceptions.envelope_exception_handler`.
"""
from rest_framework import status as http_status
from rest_framework.renderers import JSONRenderer
from rest_framework.response import Response


def envelope(data=None, message="", status=http_status.HTTP_200_OK):
    return Response({"success": True, "data": data, "message": message}, status=status)


class EnvelopeJSONRenderer(JSONRenderer):
    def render(self, data, accepted_media_type=None, renderer_context=None):
        response = (renderer_context or {}).get("response")

        if response is not None and response.status_code == http_status.HTTP_204_NO_CONTENT:
            return super().render(data, accepted_media_type, renderer_context)

        if not (isinstance(data, dict) and "success" in data):
            if response is not None and response.status_code >= 400:
                data = {"success": False, "message": "Request failed", "errors": data}
            else:
                data = {"success": True, "data": data, "message": ""}

        return super().render(data, accepted_media_type, renderer_context)
