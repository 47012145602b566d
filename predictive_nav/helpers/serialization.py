""" Module providing JSON encoding for Celery messages, so prediction value types and datetimes survive the broker. """

import json
from dataclasses import asdict
from datetime import datetime

from predictive_nav.helpers.dataclasses import AccuracyStats, Prediction, WarmResult

# Marker key -> value type, used to tag encoded dataclasses
VALUE_TYPES = {
    'prediction_obj': Prediction,
    'warm_result_obj': WarmResult,
    'accuracy_stats_obj': AccuracyStats,
}


class CustomDataEncoder(json.JSONEncoder):
    """ Class to enable json serialisation for datetimes and the prediction value types. """

    def default(self, o):
        for marker, value_type in VALUE_TYPES.items():
            if isinstance(o, value_type):
                return {marker: asdict(o)}
        if isinstance(o, datetime):
            return {'datetime_obj': o.isoformat()}
        return super().default(o)


class CustomDataDecoder(json.JSONDecoder):
    """Class to decode JSON strings into custom objects."""

    def __init__(self, *args, **kwargs):
        super().__init__(object_hook=self.object_hook, *args, **kwargs)

    def object_hook(self, obj):  # type: ignore
        # pylint: disable-msg=method-hidden
        """ Decodes JSON strings into custom objects. """
        if len(obj) == 1:
            marker = next(iter(obj))
            if marker in VALUE_TYPES:
                return VALUE_TYPES[marker](**obj[marker])

        if 'datetime_obj' in obj:
            return datetime.fromisoformat(obj['datetime_obj'])

        return obj


def dumps(obj) -> str:
    """ Serialise `obj` with `CustomDataEncoder`. """
    return json.dumps(obj, cls=CustomDataEncoder)


def loads(data: str | bytes):
    """ Deserialise `data` with `CustomDataDecoder`. """
    return json.loads(data, cls=CustomDataDecoder)
