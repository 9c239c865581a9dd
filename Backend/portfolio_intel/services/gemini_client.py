import re
import json
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ValidationError

from ..models import AnalysisResult

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n(.*?)\n?```", re.DOTALL)


# ---------- response schema ----------
class CareerPath(BaseModel):
    role: str
    match: Union[int, str] = ""
    reason: str = ""


class FocusAreas(BaseModel):
    immediate: List[str] = []
    shortTerm: List[str] = []
    longTerm: List[str] = []


class Narrative(BaseModel):
    strengths: List[str]
    careerPaths: List[CareerPath]
    learningPath: List[Union[str, Dict[str, Any]]]
    focusAreas: FocusAreas
    actionItems: List[str] = []
    frontendExpertise: str = ""
    backendExpertise: str = ""
    hiringReadiness: str = ""


def safe_json_loads(s: str, fallback: Any = None) -> Any:
    """Parse a model reply: fenced ```json block, whole text, or first {...} span."""
    if not s:
        return fallback
    match = _FENCED_JSON.search(s)
    candidates = [match.group(1)] if match else []
    candidates.append(s)
    start, end = s.find("{"), s.rfind("}")
    if start != -1 and end > start:
        candidates.append(s[start:end + 1])
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    return fallback


class Gemini:
    """
    Single integration point with the Google GenAI API. Business code
    never touches the SDK. Models are tried in order; the first reply that
    parses and validates wins.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        models: Optional[List[str]] = None,
        timeout: float = 45.0,
        client: Any = None,
        max_output_tokens: int = 8000,
    ):
        self.models = list(models or ["gemini-2.0-flash"])
        self.timeout = timeout
        self.max_output_tokens = max_output_tokens
        self._api_client = client
        if client is None and api_key:
            from google.genai import Client  # lazy import
            self._api_client = Client(api_key=api_key)

    @property
    def available(self) -> bool:
        return self._api_client is not None

    # ---------- low-level ----------
    async def _run_api(self, model: str, prompt: str) -> Optional[str]:
        from google.genai import types

        resp = await asyncio.wait_for(
            self._api_client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=types.GenerateContentConfig(temperature=0.7, max_output_tokens=self.max_output_tokens),
            ),
            timeout=self.timeout,
        )
        candidates = getattr(resp, "candidates", None) or []
        if candidates and getattr(candidates[0], "finish_reason", None) == types.FinishReason.MAX_TOKENS:
            logger.info(f"{model} hit the output token limit")
            return None
        return (resp.text or "").strip() or None

    async def generate_json(self, prompt: str, schema=Narrative) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        """Return (validated payload, model used) or (None, None) when every model fails."""
        if not self.available:
            return None, None

        for model in self.models:
            try:
                text = await self._run_api(model, prompt)
            except asyncio.TimeoutError:
                logger.warning(f"{model} timed out after {self.timeout}s")
                continue
            except Exception as e:  # SDK raises several unrelated error types
                logger.warning(f"{model} failed: {e}")
                continue
            if not text:
                continue

            parsed = safe_json_loads(text)
            if not isinstance(parsed, dict):
                logger.warning(f"{model} returned unparseable output")
                continue
            try:
                return schema.model_validate(parsed).model_dump(), model
            except ValidationError as e:
                logger.warning(f"{model} reply did not match schema: {e.error_count()} errors")
        return None, None


# shortened first, in this order, when the facts exceed the prompt budget
TRIM_ORDER = ("topRepos", "languages", "buildTools", "cloudServices", "databases",
              "frameworks", "skillGaps", "projectTypes")


def fit_facts(facts: Dict[str, Any], limit: int) -> str:
    """
    Serialize ``facts`` within ``limit`` characters. Lists and maps in
    TRIM_ORDER are halved first, then trailing fields are dropped, so the
    result is always complete JSON.
    """
    facts = dict(facts)
    text = json.dumps(facts, indent=1)
    for key in TRIM_ORDER:
        while len(text) > limit and facts.get(key):
            value = facts[key]
            keep = len(value) // 2
            facts[key] = dict(list(value.items())[:keep]) if isinstance(value, dict) else value[:keep]
            text = json.dumps(facts, indent=1)
    for key in reversed(list(facts)):
        if len(text) <= limit:
            break
        del facts[key]
        text = json.dumps(facts, indent=1)
    return text


class NarrativeGenerator:
    """Career narrative for an analysis, from Gemini or from the data itself."""

    def __init__(self, gemini: Gemini, max_prompt_chars: int = 6000):
        self.gemini = gemini
        self.max_prompt_chars = max_prompt_chars

    @staticmethod
    def summary(result: AnalysisResult) -> Dict[str, Any]:
        data = result.as_dict()
        return {
            "languages": dict(list(data["languages"].items())[:8]),
            "frameworks": data["frameworks"],
            "databases": data["databases"],
            "cloudServices": data["cloudServices"],
            "buildTools": data["buildTools"],
            "projectTypes": data["projectTypes"],
            "skillStrengths": data["skillStrengths"],
            "commitActivity": data["commitActivity"],
            "qualityMetrics": data["qualityMetrics"],
            "stats": data["stats"],
            "skillGaps": [g["skill"] for g in data["skillGaps"]],
            "hiringReadiness": data["hiringReadiness"],
            "hiringLevel": data["hiringLevel"],
            "topRepos": [r["name"] for r in data["topRepos"]],
        }

    def build_prompt(self, result: AnalysisResult) -> str:
        facts = fit_facts(self.summary(result), self.max_prompt_chars)
        return f"""
You are a career mentor for computer-science students. Based on this GitHub portfolio analysis, write guidance.

Portfolio analysis (JSON):
{facts}

Return ONLY valid JSON with this shape:
{{
  "strengths": ["..."],
  "careerPaths": [{{"role": "...", "match": 0-100, "reason": "..."}}],
  "learningPath": ["..."],
  "actionItems": ["..."],
  "focusAreas": {{"immediate": ["..."], "shortTerm": ["..."], "longTerm": ["..."]}},
  "frontendExpertise": "...",
  "backendExpertise": "...",
  "hiringReadiness": "..."
}}
Keep it specific to the data. Do not invent projects or metrics.
"""

    @staticmethod
    def fallback(result: AnalysisResult) -> Dict[str, Any]:
        """Deterministic narrative built from the analysis alone."""
        agg, rec = result.aggregate, result.recommendations
        sig, skills = agg.signals, agg.skill_strengths

        strengths = [f"{lang} ({pct}% of code)" for lang, pct in list(agg.languages.items())[:3]]
        strengths += sorted(sig.frameworks)[:4]
        if sig.has_docker:
            strengths.append("Containerization with Docker")
        if sig.has_tests:
            strengths.append("Writes automated tests")
        if not strengths:
            strengths = ["Getting started: every public project adds to your portfolio"]

        ranked = sorted(
            [("Frontend Developer", skills.frontend), ("Backend Developer", skills.backend),
             ("Full-Stack Developer", (skills.frontend + skills.backend) // 2),
             ("DevOps Engineer", skills.devops)],
            key=lambda item: -item[1],
        )
        career_paths = [
            {"role": role, "match": score * 10, "reason": f"Skill strength {score}/10 from your repositories."}
            for role, score in ranked[:3]
        ]

        todo = [c["item"] for c in rec.improvement_checklist if c["status"] == "todo"]
        by_priority = {p: [g["skill"] for g in rec.skill_gaps if g["priority"] == p]
                       for p in ("critical", "high", "medium")}

        return {
            "strengths": strengths,
            "careerPaths": career_paths,
            "learningPath": [f"Learn {g['skill']}: {g['reason']}" for g in rec.skill_gaps],
            "actionItems": todo,
            "focusAreas": {
                "immediate": by_priority["critical"] + by_priority["high"],
                "shortTerm": by_priority["medium"],
                "longTerm": [p["title"] for p in rec.project_recommendations],
            },
            "frontendExpertise": f"{skills.frontend}/10",
            "backendExpertise": f"{skills.backend}/10",
            "hiringReadiness": f"{rec.hiring_readiness}/100 ({rec.hiring_level})",
        }

    async def narrate(self, result: AnalysisResult) -> Dict[str, Any]:
        payload, model = await self.gemini.generate_json(self.build_prompt(result))
        source = "gemini"
        if payload is None:
            logger.warning("All narrative models failed; using data-derived narrative")
            payload, source = self.fallback(result), "fallback"
        payload.update({
            "source": source,
            "modelUsed": model,
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        })
        return payload
