"""LLM service that turns an ETL log excerpt into a structured diagnosis"""
import os
import json
import logging
import requests
from typing import Optional, Dict, Any
from dotenv import load_dotenv
from pydantic import ValidationError

from schemas import AnalysisResult, new_result_id, now_ms
from services.exceptions import AnalysisFailure, QuotaExceeded
from shared.enums import Severity

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_TOOL = "Talend"

QUOTA_MARKERS = ("429", "quota", "RESOURCE_EXHAUSTED")

RESULT_FIELDS = {
    "errorType": "The specific exception, error code, or API error name.",
    "component": "The component, stage, or transformation name causing the issue.",
    "lineOfCode": "The approximate line number or code snippet location from the log if available.",
    "cause": "A concise explanation of why this error occurred.",
    "fix": "Step-by-step instructions to fix the error in the specific ETL tool.",
    "optimizedSolution": "An advanced or best-practice suggestion to prevent this in the future.",
    "codeSnippet": "A specific code snippet (SQL, Java, Python, Expression) to apply as a fix.",
    "fingerprint": "A short, unique signature string for this error (e.g., 'NPE-tMap_3-rowStruct'). "
                   "Used to detect duplicate occurrences.",
    "jobName": "The name of the ETL job/mapping extracted from the log, if present.",
    "severity": f"One of {', '.join(Severity.get_valid_names())}. "
                "Critical = Job Failure/Data Loss, Low = Warning/Cosmetic.",
    "confidenceScore": "A number between 0 and 100 representing confidence in the solution.",
}
REQUIRED_FIELDS = ["errorType", "component", "cause", "fix", "optimizedSolution",
                   "fingerprint", "severity", "confidenceScore"]


def is_quota_error(error: Exception) -> bool:
    """True when the provider refused the call for rate or budget reasons"""
    response = getattr(error, "response", None)
    if getattr(response, "status_code", None) == 429:
        return True
    message = str(error)
    return any(marker in message for marker in QUOTA_MARKERS)


def parse_json_payload(text: str) -> Dict[str, Any]:
    """Parse the model output as a JSON object, tolerating Markdown code fences"""
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        cleaned = text.strip()
        if cleaned.startswith("```"):
            cleaned = cleaned.strip("`")
            # drop the optional language header line
            if "\n" in cleaned:
                cleaned = cleaned.split("\n", 1)[1]
        data = json.loads(cleaned)
    if not isinstance(data, dict):
        raise ValueError("Top-level JSON is not an object.")
    return data


class AnalyzerService:
    """Analyzer backed by the OpenAI chat completions API"""

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model_name = model_name or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.base_url = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
        self.timeout = int(os.getenv("LLM_TIMEOUT_S", "60"))
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        if not self.api_key:
            logger.error("OPENAI_API_KEY not found in environment variables")
            raise ValueError("OpenAI API key is required")

    def get_system_prompt(self, tool_name: str) -> str:
        fields = "\n".join(f"- {name}: {description}" for name, description in RESULT_FIELDS.items())
        return f"""You are a helpful assistant that debugs {tool_name} ETL jobs.
Analyze the log to find the specific error, component, and suggest a fix.
Also estimate the severity of the issue and your confidence in the solution.

Respond with a single JSON object with these keys:
{fields}

Required keys: {', '.join(REQUIRED_FIELDS)}."""

    def build_messages(self, log_content: str, tool_name: str):
        user_prompt = f"""You are a Senior {tool_name} ETL Developer and Expert.
Analyze the following {tool_name} job execution log or error message.
Identify the root cause, the component responsible, and provide a concrete fix.

Log Content:
\"\"\"
{log_content}
\"\"\""""
        return [
            {"role": "system", "content": self.get_system_prompt(tool_name)},
            {"role": "user", "content": user_prompt},
        ]

    async def analyze(self, log_content: str, tool_name: str = DEFAULT_TOOL) -> AnalysisResult:
        """
        Analyze one log excerpt.

        Raises:
            QuotaExceeded: the provider rejected the call for rate/budget reasons
            AnalysisFailure: any other failure (transport, empty or invalid reply)
        """
        tool_name = tool_name or DEFAULT_TOOL
        payload = {
            "model": self.model_name,
            "messages": self.build_messages(log_content, tool_name),
            "temperature": 0.1,
            "response_format": {"type": "json_object"},
        }

        try:
            response = requests.post(
                f"{self.base_url}/chat/completions",
                headers=self.headers,
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()
            response_text = response.json()["choices"][0]["message"]["content"]
        except Exception as e:
            logger.error(f"LLM analysis error: {e}")
            if is_quota_error(e):
                raise QuotaExceeded() from e
            raise AnalysisFailure(f"Analysis request failed: {e}") from e

        if not response_text:
            logger.warning("Empty response from OpenAI")
            raise AnalysisFailure("No response from the analysis model.")

        try:
            data = parse_json_payload(response_text)
            data.update({
                "id": new_result_id(),
                "timestamp": now_ms(),
                "tool": tool_name,
            })
            return AnalysisResult.model_validate(data)
        except (ValueError, ValidationError) as e:
            logger.error(f"Invalid analysis payload: {e}")
            raise AnalysisFailure(f"The analysis model returned an invalid result: {e}") from e
