import logging
from typing import List, Optional

from google import genai
from google.genai import types
from pydantic import ValidationError

from emodiary.config import KeyManager, Settings, key_manager, settings
from emodiary.errors import ExternalServiceFailure
from emodiary.models import AnalysisResult, RecommendationSuggestion
from emodiary.utils.ai_utils import INCOMPLETE_SCHEMA, ResponseExtractionError, extract_json

logger = logging.getLogger(__name__)

# Fixed sampling for every call
TEMPERATURE = 0.5
TOP_P = 0.8
TOP_K = 40
MAX_OUTPUT_TOKENS = 2048

ANALYSIS_PROMPT = """
You are an empathetic psychologist specialised in emotional wellbeing. Your role is to validate
emotions and give practical, conversational, useful advice based on what the person wrote.

STRUCTURE of "summary":
1. VALIDATION: acknowledge and validate the emotion ("I'm glad that..." or "It's understandable that...")
2. REFLECTION: connect the emotion with the context of what was written
3. PRACTICAL ADVICE: suggest something specific and actionable for their situation

RETURN ONLY a JSON object with this exact format:
{
  "emotion": "main_emotion",
  "intensity": number_1_to_10,
  "summary": "validation + reflection + practical advice",
  "keywords": ["word1", "word2"]
}

RULES:
- "emotion": one clear word (joy, sadness, anxiety, anger, fear, frustration, hope, ...)
- "intensity": number from 1 (very low) to 10 (very high)
- "summary": at most 40 words, warm and conversational, in the language of the entry
- "keywords": exactly 2 relevant keywords from the content

EXAMPLES of a correct "summary":
Input: "Today I feel happy because I went for a run"
"I'm glad you feel happy. Physical activity is vital for wellbeing. Keep this routine."

Input: "I'm anxious about tomorrow's presentation"
"Anxiety is normal. Prepare well today and breathe deeply tomorrow. Trust yourself."

IMPORTANT: respond with the JSON only. No extra text, no explanations, no markdown.
"""

RECOMMENDATION_PROMPT = (
    "You are a mental wellbeing expert. Generate 3 personalised recommendations. "
    "Each one must have: title, description (max 30 words), category ('Wellbeing', 'Physical Activity', "
    "'Relationships', ...), and priority ('high', 'medium', 'low'). "
    "Return the answer as a JSON object with the key 'recommendations' holding an array of objects. "
    'Example: { "recommendations": [ { "title": "...", "description": "...", "category": "...", "priority": "..." } ] }'
)


class GeminiAnalysisClient:
    """
    Sentiment analysis and recommendations through Gemini generateContent.
    Exactly one request per call; any failure surfaces as ExternalServiceFailure.
    """

    def __init__(self, config: Optional[Settings] = None, keys: Optional[KeyManager] = None, client=None):
        self.settings = config or settings
        self.keys = keys or key_manager
        self._client = client

    def get_client(self) -> Optional[genai.Client]:
        """Get a client with a key from the pool."""
        if self._client is not None:
            return self._client
        key = self.keys.get_next_key()
        if key:
            return genai.Client(
                api_key=key,
                http_options=types.HttpOptions(
                    api_version=self.settings.gemini_api_version,
                    timeout=self.settings.gemini_timeout_ms,
                ),
            )
        return None

    @staticmethod
    def _generation_config() -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=TEMPERATURE,
            top_p=TOP_P,
            top_k=TOP_K,
            max_output_tokens=MAX_OUTPUT_TOKENS,
        )

    async def _generate(self, prompt: str) -> types.GenerateContentResponse:
        try:
            client = self.get_client()
        except Exception as e:
            logger.error(f"[AI FAILURE] Could not build Gemini client: {e}")
            raise ExternalServiceFailure("The analysis service is unavailable.", reason="no_client") from e
        if not client:
            logger.error("No Gemini Client Available (Keys missing?)")
            raise ExternalServiceFailure("No Gemini API key configured.", reason="no_client")

        contents = [types.Content(role="user", parts=[types.Part.from_text(text=prompt)])]
        try:
            return await client.aio.models.generate_content(
                model=self.settings.gemini_model,
                contents=contents,
                config=self._generation_config(),
            )
        except Exception as e:
            # Timeouts, HTTP errors and SDK errors all end up here
            logger.error(f"[AI FAILURE] Gemini request failed: {e}")
            raise ExternalServiceFailure("The analysis service is unavailable.", reason="transport") from e

    async def analyze(self, text: str) -> AnalysisResult:
        prompt = f"{ANALYSIS_PROMPT}\n\nDIARY TEXT TO ANALYSE:\n{text}"
        logger.info("Sending sentiment analysis to Gemini...")
        response = await self._generate(prompt)

        try:
            data = extract_json(response)
            if not isinstance(data, dict) or data.get("emotion") is None or data.get("intensity") is None:
                logger.error(f"[AI EXTRACT] Incomplete analysis JSON: {data}")
                raise ResponseExtractionError(INCOMPLETE_SCHEMA, "Analysis JSON lacks emotion or intensity")
            try:
                result = AnalysisResult.model_validate(data)
            except ValidationError as e:
                logger.error(f"[AI EXTRACT] Analysis JSON failed validation: {e}")
                raise ResponseExtractionError(INCOMPLETE_SCHEMA, "Analysis JSON failed validation") from e
        except ResponseExtractionError as e:
            raise ExternalServiceFailure("Sentiment analysis failed.", reason=e.stage) from e

        logger.info(f"Analysis complete - Emotion: {result.emotion}")
        return result

    async def recommend(self, context_text: str) -> List[RecommendationSuggestion]:
        prompt = f"{RECOMMENDATION_PROMPT}\n\nUser context: {context_text}"
        logger.info("Sending recommendation request to Gemini...")
        response = await self._generate(prompt)

        try:
            data = extract_json(response)
            items = data.get("recommendations") if isinstance(data, dict) else None
            if not items or not isinstance(items, list):
                logger.error(f"[AI EXTRACT] Incomplete recommendation JSON: {data}")
                raise ResponseExtractionError(INCOMPLETE_SCHEMA, "Recommendation JSON has no items")
            try:
                suggestions = [RecommendationSuggestion.model_validate(item) for item in items]
            except ValidationError as e:
                logger.error(f"[AI EXTRACT] Recommendation item failed validation: {e}")
                raise ResponseExtractionError(INCOMPLETE_SCHEMA, "Recommendation item failed validation") from e
        except ResponseExtractionError as e:
            raise ExternalServiceFailure("Recommendation generation failed.", reason=e.stage) from e

        logger.info(f"Generated {len(suggestions)} recommendations.")
        return suggestions
