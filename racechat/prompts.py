"""Prompt text for the race-data assistant."""

from typing import List

from racechat.generation import MODEL_ROLE, USER_ROLE, Turn

CHAT_MODE = "chat"
EXPLAIN_MODE = "explain"
MODES = (CHAT_MODE, EXPLAIN_MODE)

CHAT_SYSTEM_PROMPT = (
    "You are a helpful assistant for Toyota Gazoo Racing. You help users understand racing data, "
    "performance statistics, and answer questions about Toyota's racing programs. Be informative, "
    "professional, and enthusiastic about motorsports.\n\n"
    "You have access to racing data from multiple sources:\n"
    "- Race results and standings (positions, times, gaps)\n"
    "- Lap times and performance data\n"
    "- Weather conditions during races\n"
    "- Vehicle and driver information\n"
    "- Analysis and endurance data\n\n"
)

EXPLAIN_SYSTEM_PROMPT = (
    "You are an expert in Toyota Gazoo Racing analytics. You specialize in interpreting racing "
    "datasets, identifying patterns, and delivering concise insights. When given a file, you quickly "
    "summarize its structure, highlight key metrics, detect correlations, surface anomalies, and "
    "provide short, actionable observations. Your explanations are always brief, clear, and focused "
    "on what matters most for racing performance and strategy.\n\n"
    "When analyzing data, follow this structure:\n"
    "1. **Data Overview**: Briefly describe what the dataset contains\n"
    "2. **Key Metrics**: Highlight the most important numbers and values\n"
    "3. **Patterns & Insights**: Identify trends, correlations, or notable observations\n"
    "4. **Anomalies**: Point out any unusual or unexpected data points\n"
    "5. **Actionable Takeaways**: Provide brief, strategic recommendations\n\n"
)

GENERAL_KNOWLEDGE_NOTE = (
    "Note: If asked about specific race data, answer based on your general knowledge of "
    "Toyota Gazoo Racing and motorsports."
)

EXPLAIN_ACK = (
    "Understood! I've received the racing dataset and I'm ready to provide a comprehensive analysis. "
    "I'll examine the data structure, identify key metrics, detect patterns, highlight anomalies, and "
    "deliver actionable insights focused on racing performance and strategy."
)
CONTEXT_ACK = (
    "Understood! I've received and analyzed the racing data. I'm ready to help you understand and "
    "answer questions about this data. What would you like to know?"
)
GENERAL_ACK = (
    "Understood! I'm here to help with all things Toyota Gazoo Racing. Whether it's race results, "
    "driver performance, technical data, or general racing questions, I'm ready to assist. "
    "What would you like to know?"
)

EXPLAIN_FILE_ONLY_MESSAGE = (
    "Please analyze this racing dataset and provide a comprehensive explanation following the "
    "structured format. Include: data overview, key metrics, patterns & insights, anomalies, and "
    "actionable takeaways. Make sure your explanation is short and simple"
)
CHAT_FILE_ONLY_MESSAGE = (
    "Please analyze the uploaded file and provide insights. Make sure your explanation is short and simple."
)

LLM_ERROR_ANSWER = "Sorry, I couldn't generate an answer right now. Please try again in a moment."

SAMPLE_QUESTIONS = [
    "What is Toyota Gazoo Racing?",
    "Tell me about Toyota's racing history",
    "What racing series does Toyota compete in?",
    "Who are Toyota's top racing drivers?",
    "What is the Toyota GR86?",
    "Tell me about Toyota's hybrid racing technology",
]


def build_system_prompt(mode: str, mongo_context: str = "", file_context: str = "") -> str:
    if mode == EXPLAIN_MODE:
        prompt = EXPLAIN_SYSTEM_PROMPT
        if file_context:
            prompt += f"📊 DATASET TO ANALYZE:\n{file_context}\n\n"
        if mongo_context:
            prompt += f"📊 ADDITIONAL RACING DATA:\n{mongo_context}\n\n"
        return prompt

    prompt = CHAT_SYSTEM_PROMPT
    if mongo_context:
        prompt += mongo_context
    if file_context:
        prompt += (
            f"\n\n📊 ADDITIONAL CONTEXT FROM UPLOADED FILE:\n{file_context}\n\n"
            "Please use this data to answer the user's questions accurately. "
            "Reference specific data points from the file when relevant."
        )
    if not mongo_context and not file_context:
        prompt += GENERAL_KNOWLEDGE_NOTE
    return prompt


def acknowledgement(mode: str, has_context: bool) -> str:
    if mode == EXPLAIN_MODE:
        return EXPLAIN_ACK
    return CONTEXT_ACK if has_context else GENERAL_ACK


def initial_turns(mode: str, mongo_context: str = "", file_context: str = "") -> List[Turn]:
    """The system/context turn plus the canned model acknowledgement."""
    return [
        Turn(USER_ROLE, build_system_prompt(mode, mongo_context, file_context)),
        Turn(MODEL_ROLE, acknowledgement(mode, bool(mongo_context or file_context))),
    ]


def default_user_message(mode: str) -> str:
    return EXPLAIN_FILE_ONLY_MESSAGE if mode == EXPLAIN_MODE else CHAT_FILE_ONLY_MESSAGE


def follow_up_message(question: str, mongo_context: str = "", file_context: str = "") -> str:
    """A later turn in an existing session, carrying any newly retrieved data."""
    parts = []
    if mongo_context:
        parts.append(mongo_context)
    if file_context:
        parts.append(f"📊 NEW FILE CONTEXT:\n{file_context}\n")
    parts.append(question)
    return "\n".join(parts)
