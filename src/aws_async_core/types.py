#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from datetime import datetime
from email.utils import format_datetime, parsedate_to_datetime
from enum import Enum

from .utils import (
    ensure_utc,
    epoch_seconds_to_datetime,
    serialize_epoch_seconds,
    serialize_rfc3339,
)


class TimestampFormat(Enum):
    """Wire formats for timestamps with serialization and deserialization helpers."""

    DATE_TIME = "iso8601"
    """RFC3339 section 5.6 datetime with optional millisecond precision."""

    HTTP_DATE = "rfc822"
    """An HTTP date as defined by the IMF-fixdate production in RFC 9110 section
    5.6.7."""

    EPOCH_SECONDS = "unixTimestamp"
    """The number of seconds that have elapsed since 00:00:00 UTC, 1 January 1970, with
    optional millisecond precision."""

    def serialize(self, value: datetime) -> str | int | float:
        """Serializes a datetime into the timestamp format.

        :param value: The timestamp to serialize.
        :returns: A formatted timestamp. This will be a number for EPOCH_SECONDS, or a
            string otherwise.
        """
        value = ensure_utc(value)
        match self:
            case TimestampFormat.EPOCH_SECONDS:
                return serialize_epoch_seconds(value)
            case TimestampFormat.HTTP_DATE:
                return format_datetime(value, usegmt=True)
            case TimestampFormat.DATE_TIME:
                return serialize_rfc3339(value)

    def deserialize(self, value: str | int | float) -> datetime:
        """Deserializes a datetime from a value of the format.

        :param value: The timestamp value to deserialize. If the format is
            EPOCH_SECONDS, the value must be a number or a string containing one.
            Otherwise, it must be a string.
        """
        match self:
            case TimestampFormat.EPOCH_SECONDS:
                return epoch_seconds_to_datetime(value=float(value))
            case TimestampFormat.HTTP_DATE:
                return ensure_utc(parsedate_to_datetime(str(value)))
            case TimestampFormat.DATE_TIME:
                return ensure_utc(datetime.fromisoformat(str(value)))
