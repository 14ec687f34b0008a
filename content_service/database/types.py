from sqlalchemy.types import DateTime, TypeDecorator

from content_service.core.clock import to_utc


class UTCDateTime(TypeDecorator):
    """
    ``TIMESTAMP WITHOUT TIME ZONE`` holding UTC.

    Values are normalized to UTC and stripped of their offset on the way in,
    and come back out as aware UTC datetimes, whatever the driver returns.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_utc(value).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return to_utc(value)
