from datetime import date, datetime
import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value) -> date:
    """
    Parse a production date (YYYY-MM-DD).

    Accepts date/datetime objects as-is so services can be called
    directly as well as from routes.

    Raises:
        HTTPException 400: malformed date, before any storage access.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except ValueError:
        logger.warning(f"Rejected malformed date: {value!r}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid date format. Expected YYYY-MM-DD, got: {value}"
        )


def format_date(value: date) -> str:
    """Storage/wire representation of a production date."""
    return value.strftime(DATE_FORMAT)
