import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from reportbot.pipeline.models import Submission
from reportbot.services.collecting_reporter import CollectingReporter

router = APIRouter(prefix="/api", tags=["shortcut"])
logger = logging.getLogger("reportbot.api.shortcut")


@router.post("/shortcut")
async def shortcut_upload(request: Request):
    """
    Upload endpoint for iOS Shortcuts: multipart form with an "audio" (or "file")
    field. Replies with the first rendered report; Shortcuts can only take one file.
    """
    form = await request.form()
    upload = form.get("audio") or form.get("file")
    if upload is None or isinstance(upload, str):
        return JSONResponse(status_code=400, content={"error": "No audio file provided"})

    audio = await upload.read()
    if not audio:
        return JSONResponse(status_code=400, content={"error": "No audio file provided"})

    reporter = CollectingReporter()
    submission = Submission(
        audio=audio,
        destination="shortcut",
        filename=upload.filename or "voice.m4a",
    )
    result = await request.app.state.services.pipeline.run(submission, reporter=reporter)

    if result.status == "transcription_failed":
        return JSONResponse(status_code=502, content={"error": result.error or "Transcription failed"})

    documents = reporter.documents or result.documents
    if not documents:
        return JSONResponse(
            status_code=400,
            content={"error": "No valid students found", "messages": reporter.messages},
        )

    first = documents[0]
    if len(documents) > 1:
        logger.info("shortcut returned first of %s reports", len(documents))
    return Response(
        content=first.content,
        media_type=first.media_type,
        headers={"Content-Disposition": f'attachment; filename="{first.filename}"'},
    )
