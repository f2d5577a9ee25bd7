"""
LLM Oracle - LangChain adapter for the generation oracle

The pipeline treats the oracle as an opaque `request -> text` callable. This
adapter renders a GenerationRequest/CorrectionRequest into chat messages and
returns the model's raw text. It does not parse anything: tolerant parsing
belongs to the extraction strategies.
"""
import json
import logging
from typing import Any, Optional, Union

from langchain_core.prompts import ChatPromptTemplate

from config import (
    ORACLE_PROVIDER,
    GEMINI_API_KEY,
    OPENAI_API_KEY,
    AI_MODEL,
    OPENAI_MODEL,
    AI_TEMPERATURE,
    AI_MAX_RETRIES,
    AI_REQUEST_TIMEOUT,
)
from synthesis.schemas import CorrectionRequest, GenerationRequest

logger = logging.getLogger(__name__)

OracleRequest = Union[GenerationRequest, CorrectionRequest]

GENERATION_SYSTEM = (
    "You generate source files for one group of a multi-phase code generation plan.\n"
    "Only write files whose output path starts with one of the allowed paths.\n"
    "Symbols listed in the prior catalog already exist: import them by their exact "
    "fully-qualified names, honor their construction contracts, never redeclare them.\n"
    "{style_rules}\n"
    "Respond with JSON only: "
    '{{"files": [{{"path": "...", "content": "...", "unit_id": "..."}}]}}'
)

CORRECTION_SYSTEM = (
    "You fix build errors in a generated project.\n"
    "Change only what the errors require. Return the FULL corrected content of every "
    "file you change; you may create missing files.\n"
    "Symbols listed in the prior catalog already exist under their exact names.\n"
    "{style_rules}\n"
    "Respond with JSON only: "
    '{{"files": [{{"path": "...", "content": "..."}}]}}'
)


def _message_text(content: Any) -> str:
    """Chat model content may be a string or a list of content parts"""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return str(content)


def create_chat_model(provider: str = ORACLE_PROVIDER):
    """
    Build the configured LangChain chat model

    Raises:
        ValueError: If the provider is unknown or its API key is not set
    """
    if provider == "gemini":
        if not GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY environment variable is not set")
        from langchain_google_genai import ChatGoogleGenerativeAI

        return ChatGoogleGenerativeAI(
            google_api_key=GEMINI_API_KEY,
            model=AI_MODEL,
            temperature=AI_TEMPERATURE,
            max_retries=AI_MAX_RETRIES,
            request_timeout=AI_REQUEST_TIMEOUT,
            transport="rest",  # Use REST API instead of gRPC to avoid proxy issues
        )
    if provider == "openai":
        if not OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY environment variable is not set")
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=OPENAI_MODEL,
            api_key=OPENAI_API_KEY,
            temperature=AI_TEMPERATURE,
            max_retries=AI_MAX_RETRIES,
            timeout=AI_REQUEST_TIMEOUT,
        )
    raise ValueError(f"Unknown oracle provider: {provider}")


class LLMOracle:
    """
    LLM Oracle - request bundle in, raw text out

    Any LangChain chat model can be injected; by default one is built from
    config.
    """

    def __init__(self, llm=None, provider: Optional[str] = None):
        self.llm = llm if llm is not None else create_chat_model(provider or ORACLE_PROVIDER)
        self.generation_prompt = ChatPromptTemplate.from_messages([
            ("system", GENERATION_SYSTEM),
            ("human", "Generation request:\n{request}"),
        ])
        self.correction_prompt = ChatPromptTemplate.from_messages([
            ("system", CORRECTION_SYSTEM),
            ("human", "Correction request:\n{request}"),
        ])

    def __call__(self, request: OracleRequest) -> str:
        if isinstance(request, CorrectionRequest):
            prompt = self.correction_prompt
            logger.info(f"[Oracle] Correction request for group {request.group_id} (iteration {request.iteration})")
        else:
            prompt = self.generation_prompt
            logger.info(f"[Oracle] Generation request for group {request.group.group_id}")

        messages = prompt.format_messages(
            style_rules=request.style_rules or "",
            request=json.dumps(request.model_dump(mode="json", exclude={"style_rules"}), indent=2),
        )
        response = self.llm.invoke(messages)
        return _message_text(getattr(response, "content", response))


__all__ = ["LLMOracle", "OracleRequest", "create_chat_model"]
