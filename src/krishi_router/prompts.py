"""Prompt templates and localized user-facing messages."""

_LANGUAGE_NAMES = {
    "bn": "Bangla (বাংলা)",
    "en": "English",
}

SECTION_HEADERS = "[শনাক্তকরণ], [প্রতিকার], [পরামর্শ]"
DIAGNOSIS_HEADER = "শনাক্তকরণ"


def language_name(language: str) -> str:
    if not isinstance(language, str):
        return _LANGUAGE_NAMES["bn"]
    return _LANGUAGE_NAMES.get(language, _LANGUAGE_NAMES["bn"])


def system_instruction(language: str = "bn") -> str:
    """Role, output language and output format directives for chat providers."""
    return (
        "Role: Senior Scientific Officer, Ministry of Agriculture, Bangladesh.\n"
        "Standard: BARI/BRRI/BARC 2024-2025.\n"
        f"Output: Strictly {language_name(language)}.\n"
        f"Format: {SECTION_HEADERS}.\n"
        "NO GREETINGS."
    )


def grounding_instruction(language: str = "bn") -> str:
    """System instruction for the grounded (search-enabled) Gemini calls."""
    return (
        "Role: Senior Scientific Officer, Ministry of Agriculture, Bangladesh.\n"
        "Instructions: Reference official BARI/BRRI/BARC/DAE 2024-2025 standards.\n"
        "Task: Audit for Pests, Diseases, and Nutrient Deficiencies.\n"
        f"Language: Strictly {language_name(language)}.\n"
        f"Format: NO GREETINGS. Use square brackets for sections: {SECTION_HEADERS}.\n"
        "Always provide integrated pest management (IPM) and chemical rotation guidelines."
    )


def audit_prompt(context: str, language: str = "bn") -> str:
    """Grounded crop-audit prompt for the Qwen vision model."""
    return (
        "[Role: Senior Scientific Officer, Ministry of Agriculture, Bangladesh]\n"
        "Task: Comprehensive Crop Audit (Pest, Disease, & Nutrient Deficiency Identification).\n"
        "Source Material: BARI, BRRI, BARC, and DAE Official Handbooks 2024-2025.\n"
        "\n"
        f"Context: {context}\n"
        "\n"
        "Audit Requirements:\n"
        "1. Identify specific Pests, Diseases, or Nutrient Deficiencies seen in the image.\n"
        "2. Provide integrated management (IPM) advice.\n"
        "3. Specify official chemical group and dosage per decimal/bigha if applicable.\n"
        f"4. Language: {language_name(language)}.\n"
        "5. Formatting: NO GREETINGS. Use square brackets for headers like "
        "[শনাক্তকরণ], [প্রতিকার], [বৈজ্ঞানিক নোট]."
    )


def crop_analysis_prompt(crop: str | None, query: str | None, weather: dict | None = None,
                         hint: str | None = None) -> str:
    parts = [f"Scientific Audit Request: Crop {crop or 'unknown'}."]
    if hint:
        parts.append(f"Symptoms identified by pixel scan: {hint}.")
    parts.append(f"User Query: {query or ''}.")
    if weather:
        parts.append(f"Environmental Context: {weather}")
    return " ".join(parts)


def weather_risk_prompt(weather: dict, language: str = "bn") -> str:
    lang = "Bangla" if language == "bn" else "English"
    return (
        f"[INST] Agri-Analysis for Bangladesh. Weather: Temp {weather.get('temp')}C, "
        f"Humidity {weather.get('humidity')}%. Predict pest/disease surge risk. Language: {lang}. [/INST]"
    )


MESSAGES = {
    "bn": {
        "key_required": "[Error] {model} ব্যবহারের জন্য আপনার প্রোফাইল সেটিংস থেকে API Key প্রদান করুন।",
        "connection_lost": "সংযোগ বিচ্ছিন্ন হয়েছে। এপিআই কী সঠিক কিনা যাচাই করুন।",
        "local_unreachable": "Ollama সার্ভারের সাথে সংযোগ করা সম্ভব হয়নি। আপনার পিসিতে Ollama চালু আছে কি?",
        "backend_failed": "বিশ্লেষণ সার্ভার থেকে উত্তর পাওয়া যায়নি। কিছুক্ষণ পর আবার চেষ্টা করুন।",
        "empty_answer": "নিশ্চিত উত্তর পাওয়া যায়নি। আরও বিস্তারিত তথ্য বা স্পষ্ট ছবি দিয়ে আবার চেষ্টা করুন।",
    },
    "en": {
        "key_required": "[Error] Please provide an API Key for {model} in your profile settings.",
        "connection_lost": "Connection lost. Please check that your API key is correct.",
        "local_unreachable": "Could not connect to the Ollama server. Is Ollama running on your computer?",
        "backend_failed": "No answer from the analysis service. Please try again shortly.",
        "empty_answer": "No confident answer was found. Try again with more detail or a clearer photo.",
    },
}


def message(key: str, language: str = "bn", **kwargs) -> str:
    """Localized message; unknown languages fall back to Bangla."""
    table = MESSAGES.get(language, MESSAGES["bn"]) if isinstance(language, str) else MESSAGES["bn"]
    return table[key].format(**kwargs)
