# pipeline.py
from __future__ import annotations
import logging
from typing import Callable, Optional

from resumind.constants import AI_RESPONSE_FORMAT, prepare_instructions
from resumind.helpers import generate_uuid
from resumind.intake import AcceptedFile
from resumind.llm_client import FeedbackParseError, message_text, parse_feedback
from resumind.resumes import new_record, save_record

LOG = logging.getLogger("resumind.pipeline")

UPLOADING = "Uploading resume…"
CONVERTING = "Creating preview…"
SAVING_PREVIEW = "Saving preview…"
PREPARING = "Preparing analysis…"
ANALYSING = "Generating AI feedback…"
DONE = "Analysis complete! Redirecting…"
RETRY_HINT = "Please review the form and try again."

GENERIC_FAILURE = "Something went wrong while analysing your resume."


class SubmissionError(ValueError):
    pass


class AnalysisError(RuntimeError):
    pass


def validate_submission(file: Optional[AcceptedFile], job_title: Optional[str]) -> None:
    if not file:
        raise SubmissionError("Choose a PDF resume before starting the analysis.")
    if not (job_title or "").strip():
        raise SubmissionError("Add the job title so we can tailor the feedback.")


def _noop(_status: str) -> None:
    pass


def analyze_resume(services, owner: str, file: AcceptedFile, company_name: str, job_title: str,
                   job_description: str, on_status: Callable[[str], None] = _noop) -> str:
    """Upload, preview, persist and review one resume; returns the new record id.

    Steps run strictly in order. A failure at any step raises AnalysisError
    with a message for the user; nothing written before it is rolled back.
    """
    kv = services.kv_for(owner)
    files = services.files_for(owner)

    def step(status: str) -> None:
        LOG.info("[%s] %s", owner, status)
        on_status(status)

    try:
        step(UPLOADING)
        uploaded_file = files.upload(file.filename, file.data)
        if not uploaded_file:
            raise AnalysisError("Failed to upload the resume file.")

        step(CONVERTING)
        image = services.convert_pdf(file.data, file.filename)
        if not image.file:
            raise AnalysisError("Unable to convert the PDF into an image preview.")

        step(SAVING_PREVIEW)
        uploaded_image = files.upload(image.filename, image.file)
        if not uploaded_image:
            raise AnalysisError("Failed to upload the preview image.")

        step(PREPARING)
        resume_id = generate_uuid()
        record = new_record(resume_id, uploaded_file["path"], uploaded_image["path"],
                            company_name, job_title, job_description)
        save_record(kv, record)

        step(ANALYSING)
        response = services.ai.feedback(
            uploaded_file["path"],
            prepare_instructions(job_title, job_description, AI_RESPONSE_FORMAT),
            files=files,
        )
        if not response:
            raise AnalysisError("Failed to analyse your resume. Please try again.")

        record["feedback"] = parse_feedback(message_text(response))
        save_record(kv, record)
        step(DONE)
        return resume_id
    except AnalysisError as e:
        LOG.error("Failed to process resume: %s", e)
        raise
    except FeedbackParseError as e:
        LOG.error("Failed to process resume: %s", e)
        raise AnalysisError(str(e)) from e
    except Exception as e:
        LOG.exception("Failed to process resume")
        raise AnalysisError(GENERIC_FAILURE) from e
