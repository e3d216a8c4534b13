import time
from typing import Optional

from langchain.chat_models import init_chat_model
from langchain_core.language_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate

from utils.errors import GenerationError
from utils.logging import log_ai_request


NO_ANSWER = "No hay respuesta."
DEFAULT_TEMPERATURE = 0.7

SYSTEM_PROMPT = (
    "Eres un profesor amable y paciente que enseña a niños de grado {grado}. "
    "Explica con ejemplos simples y emojis."
)


class TutorAgent:
    def __init__(
        self,
        model_name: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        temperature: float = DEFAULT_TEMPERATURE,
        llm_model: Optional[BaseChatModel] = None,
    ):
        """
        Initialize the Tutor Agent with an OpenAI chat model.

        A pre-built ``llm_model`` takes precedence over ``model_name``; the
        temperature is only applied when the model is built here.
        """
        self.model_name = model_name
        self.llm_model = llm_model or init_chat_model(
            f"openai:{model_name}",
            temperature=temperature,
            api_key=api_key,
        )
        self.prompt_template = ChatPromptTemplate.from_messages([
            ("system", SYSTEM_PROMPT),
            ("human", "{tema}"),
        ])

    async def generate(self, grado: str, tema: str) -> str:
        """
        Generates a friendly, example-driven explanation of ``tema`` for a
        learner in ``grado``.

        Args:
            grado (str): The learner's grade, already trimmed and non-empty.
            tema (str): The question or topic, already trimmed and non-empty.

        Returns:
            str: The trimmed explanation, or ``NO_ANSWER`` when the model
            returned no usable text.

        Raises:
            GenerationError: the call to the completion service failed.
        """
        start_time = time.time()
        chain = self.prompt_template | self.llm_model
        try:
            response = await chain.ainvoke({"grado": grado, "tema": tema})
            content = response.content
        except Exception as e:
            raise GenerationError(f"Completion request failed: {e}", cause=e) from e

        log_ai_request(self.model_name, grado, tema, (time.time() - start_time) * 1000)

        if isinstance(content, str) and content.strip():
            return content.strip()
        return NO_ANSWER
