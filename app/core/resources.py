# app/core/resources.py
"""
Resource registry: the static description of every table exposed through the admin.

Every table and column name that ever reaches SQL text comes from this module. The
registry is built once at import time and is read-only afterwards.
"""
import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from app.core.exceptions import ResourceNotFound
from app.models.resource import ColumnSpec, FieldSpec, Identifier, ResourceConfig

logger = logging.getLogger(__name__)

JLPT_LEVELS = ("N5", "N4", "N3", "N2", "N1")
READING_TYPES = ("Story", "News", "Essay", "Dialogue")
QUIZ_TYPES = ("Vocabulary", "Kanji", "Grammar", "Reading", "Listening")
QUESTION_TYPES = ("Multiple Choice", "True/False", "Fill in Blank")
SECTION_TYPES = ("Vocabulary", "Grammar", "Reading", "Listening")


def col(key: str, label: str, type: str = "text", filterable: bool = False,
        options: Sequence[str] = (), exact: bool = False) -> ColumnSpec:
    return ColumnSpec(
        key=Identifier(key),
        label=label,
        type="select" if options else type,
        filterable=filterable,
        exact=exact,
        options=tuple(options),
    )


def fld(key: str, label: str, type: str = "text", required: bool = False,
        options: Sequence[str] = ()) -> FieldSpec:
    return FieldSpec(
        key=Identifier(key),
        label=label,
        type="select" if options else type,
        required=required,
        options=tuple(options),
    )


def resource(key: str, label: str, columns: Iterable[ColumnSpec], fields: Iterable[FieldSpec] = (),
             table: Optional[str] = None, primary_key: str = "id", unique_key: Optional[str] = None,
             read_only: bool = False, timestamps: bool = True) -> ResourceConfig:
    config = ResourceConfig(
        key=key,
        label=label,
        table=Identifier(table or key),
        primary_key=Identifier(primary_key),
        columns=tuple(columns),
        fields=tuple(fields),
        unique_key=Identifier(unique_key) if unique_key else None,
        read_only=read_only,
        timestamps=timestamps,
    )
    if config.unique_key and not config.field(config.unique_key.name):
        raise ValueError(f"Resource {key}: unique key {config.unique_key} is not a declared field")
    return config


class ResourceRegistry:
    """Immutable mapping of resource key -> ResourceConfig"""

    def __init__(self, configs: Iterable[ResourceConfig]):
        entries: Dict[str, ResourceConfig] = {}
        for config in configs:
            if config.key in entries:
                raise ValueError(f"Duplicate resource key: {config.key}")
            entries[config.key] = config
        self._entries: Mapping[str, ResourceConfig] = MappingProxyType(entries)

    def resolve(self, key: str) -> ResourceConfig:
        """Look up a resource; unknown keys fail before any SQL is built"""
        config = self._entries.get(key)
        if config is None:
            logger.warning(f"Unknown resource requested: {key!r}")
            raise ResourceNotFound()
        return config

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def list(self) -> List[ResourceConfig]:
        return list(self._entries.values())

    def summary(self) -> List[Dict[str, Any]]:
        return [config.summary() for config in self._entries.values()]


RESOURCES = ResourceRegistry([
    # --- USER DATA & RESULTS ---
    resource(
        "users", "Users",
        columns=[
            col("username", "Username", filterable=True),
            col("email", "Email", filterable=True),
            col("is_premium", "Premium", type="boolean", filterable=True),
            col("last_login_at", "Last Login", type="date"),
        ],
        fields=[
            fld("username", "Username", required=True),
            fld("email", "Email", type="email", required=True),
            fld("display_name", "Display Name"),
            fld("native_language", "Native Language"),
            fld("is_active", "Active", type="boolean"),
            fld("is_premium", "Premium", type="boolean"),
            fld("target_level", "Target Level", options=JLPT_LEVELS),
        ],
        unique_key="username",
    ),
    resource(
        "user_jlpt_results", "User JLPT Results", read_only=True,
        columns=[
            col("user_id", "User ID", filterable=True),
            col("exam_id", "Exam ID", filterable=True),
            col("total_score", "Score"),
            col("passed", "Passed", type="boolean", filterable=True),
        ],
    ),
    resource(
        "user_quiz_results", "User Quiz Results", read_only=True,
        columns=[
            col("user_id", "User ID", filterable=True),
            col("quiz_id", "Quiz ID", filterable=True),
            col("score", "Score"),
            col("passed", "Passed", type="boolean", filterable=True),
        ],
    ),
    resource(
        "study_sessions", "Study Logs", read_only=True,
        columns=[
            col("user_id", "User ID", filterable=True),
            col("session_type", "Type", filterable=True),
            col("started_at", "Date", type="date"),
            col("duration_seconds", "Duration (s)"),
        ],
    ),
    resource(
        "user_progress", "User Progress", read_only=True,
        columns=[
            col("user_id", "User ID", filterable=True),
            col("content_type", "Type", filterable=True),
            col("status", "Status", filterable=True),
            col("srs_level", "SRS Lvl"),
        ],
    ),

    # --- ANALYTICS VIEWS ---
    resource(
        "vw_content_stats", "Content Stats", primary_key="jlpt_level", read_only=True, timestamps=False,
        columns=[
            col("jlpt_level", "Level", filterable=True, options=JLPT_LEVELS),
            col("vocab_count", "Vocab"),
            col("kanji_count", "Kanji"),
            col("grammar_count", "Grammar"),
            col("conversation_count", "Convos"),
        ],
    ),
    resource(
        "vw_user_progress_summary", "User Mastery", primary_key="user_id", read_only=True, timestamps=False,
        columns=[
            col("username", "Username", filterable=True),
            col("vocab_mastered", "Vocab"),
            col("kanji_mastered", "Kanji"),
            col("grammar_mastered", "Grammar"),
            col("total_study_minutes", "Mins Studied"),
        ],
    ),

    # --- CORE KNOWLEDGE ---
    resource(
        "hiragana", "Hiragana",
        columns=[
            col("character", "Char", filterable=True),
            col("romaji", "Romaji", filterable=True),
            col("category", "Category", filterable=True, exact=True),
        ],
        fields=[
            fld("character", "Character", required=True),
            fld("romaji", "Romaji", required=True),
            fld("category", "Category"),
            fld("stroke_order", "Stroke Order (JSON)", type="json"),
            fld("audio_url", "Audio URL"),
        ],
        unique_key="character",
    ),
    resource(
        "katakana", "Katakana",
        columns=[
            col("character", "Char", filterable=True),
            col("romaji", "Romaji", filterable=True),
            col("category", "Category", filterable=True, exact=True),
        ],
        fields=[
            fld("character", "Character", required=True),
            fld("romaji", "Romaji", required=True),
            fld("category", "Category"),
            fld("stroke_order", "Stroke Order (JSON)", type="json"),
            fld("audio_url", "Audio URL"),
        ],
        unique_key="character",
    ),
    resource(
        "kanji", "Kanji",
        columns=[
            col("character", "Char", filterable=True),
            col("meaning_id", "Meaning", filterable=True),
            col("jlpt_level", "JLPT", filterable=True, options=JLPT_LEVELS),
            col("stroke_count", "Strokes", type="number"),
        ],
        fields=[
            fld("character", "Character", required=True),
            fld("meaning_id", "Meaning (ID/En)", required=True),
            fld("jlpt_level", "JLPT Level", options=JLPT_LEVELS),
            fld("stroke_count", "Stroke Count", type="number"),
            fld("onyomi", "Onyomi (JSON)", type="json"),
            fld("kunyomi", "Kunyomi (JSON)", type="json"),
            fld("notes_id", "Notes", type="textarea"),
        ],
        unique_key="character",
    ),
    resource(
        "kanji_examples", "Kanji Examples",
        columns=[
            col("kanji_id", "Kanji ID", filterable=True),
            col("japanese_text", "Text", filterable=True),
            col("meaning_id", "Meaning", filterable=True),
        ],
        fields=[
            fld("kanji_id", "Kanji ID", type="number", required=True),
            fld("japanese_text", "Japanese Text", required=True),
            fld("furigana", "Furigana", required=True),
            fld("romaji", "Romaji", required=True),
            fld("meaning_id", "Meaning", required=True),
            fld("audio_url", "Audio URL"),
        ],
    ),
    resource(
        "kanji_compound", "Kanji Compounds",
        columns=[
            col("compound", "Compound", filterable=True),
            col("meaning_id", "Meaning", filterable=True),
            col("jlpt_level", "Level", filterable=True, options=JLPT_LEVELS),
        ],
        fields=[
            fld("compound", "Compound", required=True),
            fld("furigana", "Furigana", required=True),
            fld("romaji", "Romaji", required=True),
            fld("meaning_id", "Meaning", required=True),
            fld("jlpt_level", "Level", options=JLPT_LEVELS),
        ],
        unique_key="compound",
    ),
    resource(
        "vocabulary", "Vocabulary",
        columns=[
            col("word", "Word", filterable=True),
            col("hiragana", "Hiragana", filterable=True),
            col("meaning_id", "Meaning", filterable=True),
            col("jlpt_level", "JLPT", filterable=True, options=JLPT_LEVELS),
        ],
        fields=[
            fld("word", "Word", required=True),
            fld("hiragana", "Hiragana"),
            fld("katakana", "Katakana"),
            fld("romaji", "Romaji", required=True),
            fld("meaning_id", "Meaning", required=True),
            fld("jlpt_level", "JLPT Level", options=JLPT_LEVELS),
            fld("word_category", "Category"),
            fld("pitch_accent", "Pitch Accent"),
            fld("audio_url", "Audio URL"),
        ],
    ),
    resource(
        "vocabulary_examples", "Vocab Examples",
        columns=[
            col("vocabulary_id", "Vocab ID", filterable=True),
            col("japanese_text", "Sentence", filterable=True),
            col("meaning_id", "Meaning", filterable=True),
        ],
        fields=[
            fld("vocabulary_id", "Vocabulary ID", type="number", required=True),
            fld("japanese_text", "Sentence", type="textarea", required=True),
            fld("furigana", "Furigana", type="textarea", required=True),
            fld("romaji", "Romaji", type="textarea", required=True),
            fld("meaning_id", "Meaning", type="textarea", required=True),
        ],
    ),
    resource(
        "vocabulary_categories", "Vocab Cats",
        columns=[
            col("name_id", "Name", filterable=True),
            col("name_ja", "Name (JP)", filterable=True),
        ],
        fields=[
            fld("name_id", "Name (ID)", required=True),
            fld("name_ja", "Name (JP)"),
            fld("description_id", "Description", type="textarea"),
        ],
        unique_key="name_id",
    ),
    resource(
        "grammar", "Grammar",
        columns=[
            col("pattern", "Pattern", filterable=True),
            col("title_id", "Title", filterable=True),
            col("jlpt_level", "JLPT", filterable=True, options=JLPT_LEVELS),
        ],
        fields=[
            fld("pattern", "Pattern", required=True),
            fld("title_id", "Title (ID)", required=True),
            fld("jlpt_level", "JLPT Level", options=JLPT_LEVELS),
            fld("structure", "Structure", type="textarea"),
            fld("explanation_id", "Explanation (ID)", type="textarea"),
            fld("formation", "Formation (JSON)", type="json"),
        ],
    ),
    resource(
        "grammar_examples", "Grammar Examples",
        columns=[
            col("grammar_id", "Grammar ID", filterable=True),
            col("japanese_text", "Sentence", filterable=True),
            col("meaning_id", "Meaning", filterable=True),
        ],
        fields=[
            fld("grammar_id", "Grammar ID", type="number", required=True),
            fld("japanese_text", "Sentence", type="textarea", required=True),
            fld("furigana", "Furigana", type="textarea", required=True),
            fld("romaji", "Romaji", type="textarea", required=True),
            fld("meaning_id", "Meaning", type="textarea", required=True),
        ],
    ),
    resource(
        "audio_files", "Audio Files",
        columns=[
            col("file_name", "Name", filterable=True),
            col("file_path", "Path", filterable=True),
            col("duration_ms", "Duration (ms)", type="number"),
        ],
        fields=[
            fld("file_name", "File Name", required=True),
            fld("file_path", "File Path", required=True),
            fld("file_url", "Public URL"),
            fld("duration_ms", "Duration (ms)", type="number"),
            fld("reference_type", "Ref Type"),
            fld("reference_id", "Ref ID", type="number"),
        ],
        unique_key="file_path",
    ),

    # --- CONTENT ---
    resource(
        "conversations", "Conversations",
        columns=[
            col("title_id", "Title", filterable=True),
            col("jlpt_level", "JLPT", filterable=True, options=JLPT_LEVELS),
            col("topic", "Topic", filterable=True),
        ],
        fields=[
            fld("title_id", "Title (ID)", required=True),
            fld("jlpt_level", "JLPT Level", options=JLPT_LEVELS),
            fld("topic", "Topic"),
            fld("description_id", "Description", type="textarea"),
            fld("audio_url", "Audio URL"),
            fld("video_url", "Video URL"),
            fld("is_featured", "Featured", type="boolean"),
        ],
    ),
    resource(
        "conversation_lines", "Conv. Lines",
        columns=[
            col("conversation_id", "Conv ID", filterable=True),
            col("line_order", "Order", type="number"),
            col("speaker_name", "Speaker", filterable=True),
            col("japanese_text", "Text", filterable=True),
        ],
        fields=[
            fld("conversation_id", "Conversation ID", type="number", required=True),
            fld("line_order", "Order", type="number", required=True),
            fld("speaker_name", "Speaker Name"),
            fld("japanese_text", "Japanese Text", type="textarea", required=True),
            fld("furigana", "Furigana", type="textarea"),
            fld("romaji", "Romaji", type="textarea"),
            fld("meaning_id", "Meaning", type="textarea", required=True),
            fld("audio_url", "Audio URL"),
        ],
    ),
    resource(
        "reading_texts", "Reading Texts",
        columns=[
            col("title_id", "Title", filterable=True),
            col("content_type", "Type", filterable=True, options=READING_TYPES),
            col("jlpt_level", "JLPT", filterable=True, options=JLPT_LEVELS),
        ],
        fields=[
            fld("title_id", "Title (ID)", required=True),
            fld("content_type", "Type", options=READING_TYPES),
            fld("jlpt_level", "JLPT Level", options=JLPT_LEVELS),
            fld("japanese_text", "Japanese Text", type="textarea", required=True),
            fld("meaning_id", "Translation (ID)", type="textarea", required=True),
            fld("summary_id", "Summary", type="textarea"),
            fld("image_url", "Image URL"),
        ],
    ),
    resource(
        "reading_sentences", "Reading Sentences",
        columns=[
            col("reading_text_id", "Text ID", filterable=True),
            col("sentence_order", "Order", type="number"),
            col("japanese_text", "Text", filterable=True),
        ],
        fields=[
            fld("reading_text_id", "Text ID", type="number", required=True),
            fld("sentence_order", "Order", type="number", required=True),
            fld("japanese_text", "Japanese", type="textarea", required=True),
            fld("meaning_id", "Meaning", type="textarea", required=True),
            fld("grammar_points", "Grammar IDs (JSON)", type="json"),
        ],
    ),

    # --- EXAMS & TESTS ---
    resource(
        "quiz_sets", "Quiz Sets",
        columns=[
            col("title_id", "Title", filterable=True),
            col("quiz_type", "Type", filterable=True, options=QUIZ_TYPES),
            col("jlpt_level", "JLPT", filterable=True, options=JLPT_LEVELS),
        ],
        fields=[
            fld("title_id", "Title (ID)", required=True),
            fld("jlpt_level", "JLPT Level", options=JLPT_LEVELS),
            fld("quiz_type", "Type", options=QUIZ_TYPES),
            fld("time_limit_minutes", "Time Limit", type="number"),
            fld("pass_score", "Pass Score", type="number"),
            fld("is_active", "Active", type="boolean"),
        ],
    ),
    resource(
        "quiz_questions", "Quiz Questions",
        columns=[
            col("quiz_set_id", "Set ID", filterable=True),
            col("question_order", "Order", type="number"),
            col("question_type", "Type", filterable=True, options=QUESTION_TYPES),
        ],
        fields=[
            fld("quiz_set_id", "Quiz Set ID", type="number", required=True),
            fld("question_order", "Order", type="number", required=True),
            fld("question_type", "Type", options=QUESTION_TYPES),
            fld("question_ja", "Question (JP)", type="textarea"),
            fld("question_id", "Question (ID)", type="textarea", required=True),
            fld("options", "Options (JSON)", type="json"),
            fld("correct_answer", "Correct Answer", required=True),
            fld("explanation_id", "Explanation", type="textarea"),
        ],
    ),
    resource(
        "jlpt_exams", "JLPT Exams",
        columns=[
            col("title_id", "Exam Title", filterable=True),
            col("exam_year", "Year", filterable=True),
            col("jlpt_level", "Level", filterable=True, options=JLPT_LEVELS),
        ],
        fields=[
            fld("title_id", "Exam Title", required=True),
            fld("exam_year", "Year", type="number"),
            fld("jlpt_level", "Level", options=JLPT_LEVELS),
            fld("total_time", "Duration (min)", type="number", required=True),
            fld("is_active", "Active", type="boolean"),
        ],
    ),
    resource(
        "jlpt_exam_sections", "JLPT Sections",
        columns=[
            col("exam_id", "Exam ID", filterable=True),
            col("section_name_id", "Name", filterable=True),
            col("section_type", "Type", filterable=True, options=SECTION_TYPES),
        ],
        fields=[
            fld("exam_id", "Exam ID", type="number", required=True),
            fld("section_name_id", "Section Name", required=True),
            fld("section_type", "Type", options=SECTION_TYPES),
            fld("time_limit_minutes", "Time Limit", type="number", required=True),
        ],
    ),
    resource(
        "jlpt_exam_questions", "JLPT Questions",
        columns=[
            col("section_id", "Section ID", filterable=True),
            col("question_number", "Num", type="number"),
            col("question_ja", "Question", filterable=True),
        ],
        fields=[
            fld("section_id", "Section ID", type="number", required=True),
            fld("question_number", "Number", type="number", required=True),
            fld("question_ja", "Question Text", type="textarea"),
            fld("options", "Options (JSON)", type="json", required=True),
            fld("correct_answer", "Correct Answer", required=True),
        ],
    ),
])


def get_registry() -> ResourceRegistry:
    """Dependency returning the process-wide registry"""
    return RESOURCES
