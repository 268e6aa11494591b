"""
Generation service: the two operations callers use.

analyze_idea: feasibility analysis for one concept, typed as AnalysisResult.
generate_blueprint: primitive decomposition, typed as a list of BlueprintPart.

Both build a prompt, hand a single-key operation to the request executor with
the matching output contract, and decode the validated payload. Errors pass
through untouched; recovery lives in the executor.
"""

import logging
from typing import List, Optional

from .credentials import CredentialPool
from .executor import RequestExecutor
from .gemini_client import GeminiClient
from .prompts import (
    ANALYSIS_SYSTEM_INSTRUCTION,
    build_analysis_prompt,
    build_blueprint_prompt,
)
from .schema_contract import ANALYSIS_CONTRACT, BLUEPRINT_CONTRACT, to_response_schema
from .schemas import AnalysisRequest, AnalysisResult, BlueprintPart

logger = logging.getLogger(__name__)

_ANALYSIS_SCHEMA = to_response_schema(ANALYSIS_CONTRACT)
_BLUEPRINT_SCHEMA = to_response_schema(BLUEPRINT_CONTRACT)


class GenerationService:
    """
    Usage:
        service = GenerationService.from_settings(settings)
        result = service.analyze_idea(AnalysisRequest(description="..."))
        parts = service.generate_blueprint("a suspension bridge")
    """

    def __init__(self, client: GeminiClient, executor: RequestExecutor,
                 deadline_seconds: Optional[float] = None):
        self.client = client
        self.executor = executor
        self.deadline_seconds = deadline_seconds

    @classmethod
    def from_settings(cls, settings) -> "GenerationService":
        pool = CredentialPool.from_settings(settings)
        executor = RequestExecutor(pool, backoff_seconds=settings.QUOTA_BACKOFF_SECONDS)
        return cls(
            GeminiClient.from_settings(settings),
            executor,
            deadline_seconds=settings.REQUEST_DEADLINE_SECONDS,
        )

    @property
    def pool(self) -> CredentialPool:
        return self.executor.pool

    def analyze_idea(self, request: AnalysisRequest) -> AnalysisResult:
        prompt = build_analysis_prompt(request)

        def operation(api_key: str):
            return self.client.generate_content(
                api_key,
                prompt,
                system_instruction=ANALYSIS_SYSTEM_INSTRUCTION,
                response_schema=_ANALYSIS_SCHEMA,
            )

        data = self.executor.execute(operation, ANALYSIS_CONTRACT, self.deadline_seconds)

        # The caller's domain wins over whatever the model echoed back
        returned = data.get("domain")
        if returned != request.domain.value:
            logger.info("Model reported domain %r: stamping %r", returned, request.domain.value)
        data["domain"] = request.domain.value
        return AnalysisResult.model_validate(data)

    def generate_blueprint(self, description: str) -> List[BlueprintPart]:
        prompt = build_blueprint_prompt(description)

        def operation(api_key: str):
            return self.client.generate_content(
                api_key,
                prompt,
                response_schema=_BLUEPRINT_SCHEMA,
            )

        data = self.executor.execute(operation, BLUEPRINT_CONTRACT, self.deadline_seconds)
        if not data:
            logger.info("Blueprint generation produced no parts for %r", description[:40])
        return [BlueprintPart.model_validate(item) for item in data]
