# --- mapgen_lib/log_utils.py ---
import logging
from typing import Optional, Set, Tuple

# Pipeline stages that log under their own "mapgen.<topic>" logger.
PROJECT_TOPICS = {
    "mapgen": {
        "main",
        "config",
        "geometry",
        "raster",
        "distance",
        "morph",
        "texture",
        "light",
        "composite",
        "emit",
        "sprites",
    }
}

TOPIC_WIDTH = max(len(t) for t in PROJECT_TOPICS["mapgen"])

LEVEL_COLORS = {
    logging.DEBUG: "\033[38;5;252m",  # Light Grey
    logging.INFO: "\033[38;5;111m",  # Pastel Blue
    logging.WARNING: "\033[38;5;229m",  # Pale Yellow
    logging.ERROR: "\033[38;5;210m",  # Soft Red
    logging.CRITICAL: "\033[38;5;217m",  # Light Magenta
}


class RichLogFormatter(logging.Formatter):
    """
    Prefixes every line of a record with its level and pipeline stage, in
    aligned columns. Records logged with extra={"raw": True} (style legends,
    sprite reports) are passed through untouched.
    """

    def __init__(self, use_color=False, with_time=False):
        super().__init__(datefmt="%H:%M:%S")
        self.with_time = with_time
        if use_color:
            self.COLORS = dict(LEVEL_COLORS)
            self.BOLD = "\033[1m"
            self.RESET = "\033[0m"
        else:
            self.COLORS = {}
            self.BOLD = ""
            self.RESET = ""

    def format(self, record):
        if getattr(record, "raw", False):
            return super().format(record)

        color = self.COLORS.get(record.levelno, "")
        level_name = record.levelname[:5]
        topic = record.name.split(".")[-1][:TOPIC_WIDTH]
        prefix = (
            f"{color}{level_name:<5}{self.RESET}:"
            f"{self.BOLD}{topic:<{TOPIC_WIDTH}}{self.RESET}: "
        )
        if self.with_time:
            prefix = f"{self.formatTime(record, self.datefmt)} {prefix}"
        s = super().format(record)
        return "\n".join(f"{prefix}{line}" for line in s.split("\n"))


def resolve_topics(debug_topics: Optional[str]) -> Tuple[Set[str], Set[str]]:
    """
    Expands a comma-separated topic list to full topic names.

    Each entry may be a prefix ("dist" -> "distance", "co" -> "config" and
    "composite"); "all" selects every topic.

    Returns:
        (matched topics, entries that matched nothing)
    """
    if not debug_topics:
        return set(), set()
    user_topics = [t.strip() for t in debug_topics.split(",") if t.strip()]
    valid_topics = PROJECT_TOPICS["mapgen"]
    if "all" in user_topics:
        return set(valid_topics), set()
    matched, unknown = set(), set()
    for u in user_topics:
        hits = {full for full in valid_topics if full.startswith(u)}
        if hits:
            matched |= hits
        else:
            unknown.add(u)
    return matched, unknown


def setup_logging(level, color_logs, debug_topics, log_file):
    """Installs the console (and optional file) handler on the "mapgen" logger tree."""
    root_logger = logging.getLogger("mapgen")
    for h in root_logger.handlers[:]:
        root_logger.removeHandler(h)
        h.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(RichLogFormatter(use_color=color_logs))
    root_logger.addHandler(console_handler)
    root_logger.setLevel(level)
    main_log = logging.getLogger("mapgen.main")

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="w")
            file_handler.setFormatter(RichLogFormatter(use_color=False, with_time=True))
            root_logger.addHandler(file_handler)
            main_log.info("Logging to file: %s", log_file)
        except OSError as e:
            root_logger.error("Could not open log file %s: %s", log_file, e)

    topics, unknown = resolve_topics(debug_topics)
    for topic in topics:
        logging.getLogger(f"mapgen.{topic}").setLevel(logging.DEBUG)
    if unknown:
        main_log.warning(
            "Unknown debug topic(s): %s. Valid topics: %s",
            ", ".join(sorted(unknown)),
            ", ".join(sorted(PROJECT_TOPICS["mapgen"])),
        )
