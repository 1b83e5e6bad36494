from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..inpainting.services.imagen import DEFAULT_PROMPT

# the stage names and their order are part of the response contract
WORKFLOW_STEPS = (
    "fetch",
    "validate",
    "detect_fields",
    "ocr",
    "reconcile",
    "build_mask",
    "build_highlight",
    "inpaint",
    "upload",
    "respond",
)
OutputType = Literal["original", "mask", "highlighted", "inpainted"]


class ProcessImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input_file_name: str = Field(alias="inputFileName", min_length=1)
    inpaint_prompt: str = Field(default=DEFAULT_PROMPT, alias="inpaintPrompt")
    padding: int = Field(default=5, ge=0, le=200)
    return_original: bool = Field(default=False, alias="returnOriginal")
    return_mask: bool = Field(default=False, alias="returnMask")
    return_highlighted: bool = Field(default=True, alias="returnHighlighted")
    restore_details: bool = Field(default=False, alias="restoreDetails")
    input_bucket: Optional[str] = Field(default=None, alias="inputBucket")
    output_bucket: Optional[str] = Field(default=None, alias="outputBucket")
    job_id: Optional[str] = Field(default=None, alias="jobId")

    @field_validator("input_file_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("inputFileName must not be blank")
        return v

    @field_validator("inpaint_prompt", mode="before")
    @classmethod
    def _default_prompt(cls, v: Any) -> Any:
        return v if (isinstance(v, str) and v.strip()) else DEFAULT_PROMPT


class OutputFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: OutputType
    file_name: str = Field(alias="fileName")
    url: str
    sample_number: Optional[int] = Field(default=None, alias="sampleNumber")


class ImageInfo(BaseModel):
    format: str
    width: int
    height: int
    size: int
    mime_type: str = Field(alias="mimeType")

    model_config = ConfigDict(populate_by_name=True)


class WorkflowResult(BaseModel):
    """Everything one successful run produced; `to_response()` is the JSON body."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str
    input_file_name: str
    image: ImageInfo
    detection: Dict[str, Any]
    detected_fields: List[Dict[str, Any]]
    selected_fields: List[Dict[str, Any]]
    unified_strategy: str
    masked_fields: List[Dict[str, Any]]
    output_files: List[OutputFile]
    steps: List[str]
    step_timings: Dict[str, float]
    processing: Dict[str, Any]
    processed_at: str

    def to_response(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "inputFileName": self.input_file_name,
            "outputFiles": [f.model_dump(by_alias=True, exclude_none=True) for f in self.output_files],
            "samplesCount": sum(1 for f in self.output_files if f.type == "inpainted"),
            "searchMode": "auto_field_detection",
            "autoDetectedFields": self.detected_fields,
            "distanceAnalysis": [
                {
                    "fieldType": f["fieldType"],
                    "distance": f["distance"],
                    "distanceReason": f["distanceReason"],
                }
                for f in self.detected_fields
            ],
            "maskingStrategy": {
                "unifiedStrategy": self.unified_strategy,
                "fields": self.masked_fields,
            },
            "detection": self.detection,
            "selectedFields": self.selected_fields,
            "processingTime": self.processing["processingTime"],
            "processing": self.processing,
            "originalImage": {
                "fileName": self.input_file_name,
                "size": self.image.size,
                "format": self.image.format,
                "dimensions": {"width": self.image.width, "height": self.image.height},
            },
            "steps": list(self.steps),
            "stepTimings": self.step_timings,
            "metadata": {
                "processedAt": self.processed_at,
                "success": True,
                "note": (
                    f"Auto-detected standard fields - {len(self.detected_fields)} fields found and "
                    f"processed with {sum(1 for f in self.output_files if f.type == 'inpainted')} inpainted samples"
                ),
            },
        }
