"""REST views for contract documents."""
from django.http import FileResponse, JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.core.permissions import get_current_user_from_request
from .models import ContractDocument


@method_decorator(csrf_exempt, name="dispatch")
class DocumentDownloadView(View):
    """REST endpoint for downloading contract documents."""

    def get(self, request, document_id):
        """
        Download a contract document.

        Requires authentication with contract read access and verifies tenant ownership.
        """
        user = get_current_user_from_request(request)
        if not user:
            return JsonResponse({"error": "Authentication required"}, status=401)

        if not user.tenant:
            return JsonResponse({"error": "No tenant assigned"}, status=403)

        if not user.has_perm_check("contracts", "read"):
            return JsonResponse({"error": "Permission denied"}, status=403)

        document = ContractDocument.objects.filter(
            tenant=user.tenant,
            id=document_id,
        ).first()

        if not document:
            return JsonResponse({"error": "Document not found"}, status=404)

        try:
            response = FileResponse(
                document.file.open("rb"),
                content_type=document.content_type,
            )
            # Check if preview mode (inline viewing) is requested
            preview = request.GET.get("preview", "").lower() in ("true", "1")
            disposition = "inline" if preview else "attachment"
            response["Content-Disposition"] = f'{disposition}; filename="{document.original_filename}"'
            response["Content-Length"] = document.file_size
            return response
        except FileNotFoundError:
            return JsonResponse({"error": "File not found on storage"}, status=404)
