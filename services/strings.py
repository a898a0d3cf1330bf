"""Localized user-facing strings used by the workflow.

Lookups fall back to English when a key is missing for the selected
language, and to the key itself when English has no entry either.
"""

from typing import Dict

from models.diagnosis_models import Language

FALLBACK_LANGUAGE = Language.ENGLISH

TRANSLATIONS: Dict[Language, Dict[str, str]] = {
    Language.ENGLISH: {
        "chatInitialMessage": (
            "Hello! I am Chashi Bondhu. Ask me anything about this disease, "
            "such as which medicine to use, how to apply it, or where to buy it."
        ),
        "chatErrorMessage": "Sorry, I could not get an answer right now. Please try again.",
        "errorNoImage": "No Image Selected",
        "errorNoImageMessage": "Please upload a photo of a plant or leaf first.",
        "errorFileRead": "Could Not Read File",
        "errorFileReadMessage": "The selected file could not be read. Please choose a PNG, JPEG, or WEBP image.",
        "errorContentBlocked": "Image Blocked",
        "errorAnalysisFailed": "Analysis Failed",
        "errorInvalidResponse": "Invalid Response",
        "errorConnection": "Connection Problem",
        "errorUnexpected": "An unexpected error occurred. Please try again.",
        "audioContextNotReady": "Audio context not ready. Please click on the page first and try again.",
        "audioPlaybackFailed": "Failed to play audio.",
        "plantStatus": "Plant status",
        "identifiedDisease": "Identified disease",
        "descriptionLabel": "Description",
        "controlMeasuresLabel": "Control measures",
        "preventativeMeasuresLabel": "Preventative measures",
    },
    Language.BENGALI: {
        "chatInitialMessage": (
            "নমস্কার! আমি চাষী বন্ধু। এই রোগ সম্পর্কে যেকোনো প্রশ্ন করুন, "
            "যেমন কোন ওষুধ ব্যবহার করবেন, কীভাবে প্রয়োগ করবেন বা কোথায় কিনবেন।"
        ),
        "chatErrorMessage": "দুঃখিত, এই মুহূর্তে উত্তর দিতে পারছি না। অনুগ্রহ করে আবার চেষ্টা করুন।",
        "errorNoImage": "কোনো ছবি নির্বাচন করা হয়নি",
        "errorNoImageMessage": "অনুগ্রহ করে প্রথমে গাছ বা পাতার একটি ছবি আপলোড করুন।",
        "errorFileRead": "ফাইল পড়া যায়নি",
        "errorFileReadMessage": "নির্বাচিত ফাইলটি পড়া যায়নি। অনুগ্রহ করে PNG, JPEG বা WEBP ছবি বেছে নিন।",
        "errorContentBlocked": "ছবিটি গ্রহণযোগ্য নয়",
        "errorAnalysisFailed": "বিশ্লেষণ ব্যর্থ হয়েছে",
        "errorInvalidResponse": "অপ্রত্যাশিত উত্তর",
        "errorConnection": "সংযোগে সমস্যা",
        "errorUnexpected": "একটি অপ্রত্যাশিত ত্রুটি ঘটেছে। অনুগ্রহ করে আবার চেষ্টা করুন।",
        "plantStatus": "গাছের অবস্থা",
        "identifiedDisease": "শনাক্ত করা রোগ",
        "descriptionLabel": "বিবরণ",
        "controlMeasuresLabel": "নিয়ন্ত্রণের উপায়",
        "preventativeMeasuresLabel": "প্রতিরোধের উপায়",
    },
}


def translate(language: Language, key: str) -> str:
    """Return the string for `key` in `language`, falling back to English."""
    table = TRANSLATIONS.get(Language(language), {})
    value = table.get(key)
    if value:
        return value
    return TRANSLATIONS[FALLBACK_LANGUAGE].get(key, key)
