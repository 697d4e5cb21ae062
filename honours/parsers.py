"""Spreadsheet parsing: assessment rows into modules."""

import logging
import re
from io import BytesIO
from typing import Dict, List, Optional

import pandas as pd
from openpyxl import load_workbook
from pydantic import ValidationError

from honours.models import Assessment, Grade, Module

logger = logging.getLogger(__name__)

# Canonical column -> accepted header variations (after normalize_col_name)
COLUMN_VARIANTS: Dict[str, List[str]] = {
    "module_id": ["module id", "moduleid"],
    "module_code": ["module code", "modulecode", "code", "module"],
    "module_name": ["module name", "modulename", "module title", "title"],
    "credits": ["credits", "credit", "module credits", "credit value"],
    "level": ["level", "fheq level", "module level"],
    "assessment_id": ["assessment id", "assessmentid"],
    "assessment": ["assessment", "assessment name", "assessment title", "component"],
    "weight": ["weight", "weighting", "assessment weight"],
    "score": ["score", "grade", "mark", "result"],
}

REQUIRED_COLUMNS = ["module_code", "credits", "level", "assessment", "weight"]

SUPPORTED_EXTENSIONS = (".xlsx", ".csv")

# "Total", "Totals", "Total credits"; not module codes such as TOTAL101
SUMMARY_ROW = re.compile(r'totals?\b', re.IGNORECASE)


def normalize_col_name(col_name) -> str:
    """Normalize a header for matching: lowercase, no dots/commas/%/#, single spaces."""
    if pd.isna(col_name):
        return ""
    normalized = str(col_name).strip().lower()
    normalized = re.sub(r'[.,%#()]', '', normalized)
    normalized = re.sub(r'\s+', ' ', normalized)
    return normalized.strip()


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename sheet headers to canonical column names.

    Raises:
        ValueError: if a required column cannot be found
    """
    rename = {}
    for original in df.columns:
        normalized = normalize_col_name(original)
        for target, variations in COLUMN_VARIANTS.items():
            if normalized in variations and target not in rename.values():
                rename[original] = target
                break

    logger.debug("Renaming sheet columns: %s", rename)
    df = df.rename(columns=rename)

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(
            f"Missing required column(s): {', '.join(missing)}. Found: {list(df.columns)}"
        )
    return df


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return bool(pd.isna(value))


def _to_number(value) -> float:
    if isinstance(value, str):
        value = value.strip().replace('%', '').strip()
    return float(value)


def normalize_weight(value) -> float:
    """
    Normalize an assessment weight to a 0-1 fraction.

    Handles both fractions (0.4) and percentages (40, "40%"). A value with a
    percent sign is always a percentage, so "1%" is 0.01.
    """
    if _is_blank(value):
        raise ValueError("Assessment weight is blank")
    weight = _to_number(value)
    if weight > 1.0 or (isinstance(value, str) and "%" in value):
        return weight / 100.0
    return weight


def parse_score(value) -> Optional[float]:
    """Score out of 100, or None for an ungraded (blank) cell."""
    if _is_blank(value):
        return None
    return _to_number(value)


def _cell_text(value) -> str:
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def rows_to_modules(df: pd.DataFrame) -> List[Module]:
    """
    Group assessment rows by module code, in first-seen order.

    Raises:
        ValueError: if a row cannot be parsed or a module fails validation
    """
    grouped: Dict[str, Dict] = {}

    for position, row in enumerate(df.to_dict(orient="records"), start=2):
        code = _cell_text(row.get("module_code"))
        if not code or SUMMARY_ROW.match(code):
            logger.debug("Skipping row %d: no module code or a summary row", position)
            continue

        entry = grouped.get(code)
        if entry is None:
            entry = {
                "id": _cell_text(row.get("module_id")) or code,
                "code": code,
                "name": _cell_text(row.get("module_name")) or code,
                "credits": row.get("credits"),
                "level": row.get("level"),
                "assessments": [],
            }
            grouped[code] = entry

        try:
            score = parse_score(row.get("score"))
            assessment = {
                "id": _cell_text(row.get("assessment_id")) or f"{code}-{len(entry['assessments']) + 1}",
                "name": _cell_text(row.get("assessment")) or f"Assessment {len(entry['assessments']) + 1}",
                "weight": normalize_weight(row.get("weight")),
                "grade": Grade(score=score) if score is not None else None,
            }
        except (ValueError, TypeError, ValidationError) as e:
            raise ValueError(f"Row {position} ({code}): {e}") from e
        entry["assessments"].append(assessment)

    modules: List[Module] = []
    for code, entry in grouped.items():
        try:
            entry["credits"] = int(_to_number(entry["credits"]))
            entry["level"] = int(_to_number(entry["level"]))
            entry["assessments"] = [Assessment(**a) for a in entry["assessments"]]
            modules.append(Module(**entry))
        except (ValueError, TypeError, ValidationError) as e:
            raise ValueError(f"Invalid data for module {code}: {e}") from e

    return modules


def _pick_sheet(file_bytes: bytes) -> str:
    """Prefer a sheet whose name mentions assessments, grades or modules."""
    workbook = load_workbook(filename=BytesIO(file_bytes), read_only=True)
    names = workbook.sheetnames
    workbook.close()
    for name in names:
        lowered = name.lower()
        if 'assess' in lowered or 'grade' in lowered or 'module' in lowered:
            return name
    return names[0]


def load_sheet(file_bytes: bytes, filename: str) -> pd.DataFrame:
    """
    Read an uploaded .xlsx or .csv file into a raw DataFrame.

    Raises:
        ValueError: for unsupported or unreadable files
    """
    lowered = filename.lower()
    try:
        if lowered.endswith(".csv"):
            return pd.read_csv(BytesIO(file_bytes))
        if lowered.endswith(".xlsx"):
            sheet_name = _pick_sheet(file_bytes)
            logger.debug("Reading worksheet '%s' from %s", sheet_name, filename)
            return pd.read_excel(BytesIO(file_bytes), sheet_name=sheet_name, engine='openpyxl')
    except ValueError:
        raise
    except Exception as e:
        raise ValueError(f"Could not read {filename}: {e}") from e
    raise ValueError(f"Unsupported file type: {filename}. Expected one of {', '.join(SUPPORTED_EXTENSIONS)}")


def parse_module_sheet(file_bytes: bytes, filename: str) -> List[Module]:
    """
    Parse an assessment sheet into modules.

    Expected layout, one row per assessment:
    - Module Code, Module Name, Credits, Level
    - Assessment, Weight (fraction or percentage), Score (blank when ungraded)
    - Optional Module ID / Assessment ID columns

    Returns:
        Modules in the order they first appear
    """
    raw = load_sheet(file_bytes, filename)
    modules = rows_to_modules(normalize_columns(raw))
    logger.info(
        "Parsed %s: %d assessment rows across %d modules",
        filename, sum(len(m.assessments) for m in modules), len(modules),
    )
    return modules
