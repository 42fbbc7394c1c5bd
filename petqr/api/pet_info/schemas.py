# petqr/api/pet_info/schemas.py
from marshmallow import Schema, fields, validate, validates_schema, ValidationError, EXCLUDE


class LocationReportSchema(Schema):
    """
    Finder's device position. `denied` is sent when the browser refused
    geolocation; coordinates are required otherwise.
    """
    class Meta:
        unknown = EXCLUDE

    latitude = fields.Float(allow_none=True, load_default=None, validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(allow_none=True, load_default=None, validate=validate.Range(min=-180, max=180))
    denied = fields.Bool(load_default=False)

    @validates_schema
    def coordinates_unless_denied(self, data, **kwargs):
        if data.get('denied'):
            return
        if data.get('latitude') is None or data.get('longitude') is None:
            raise ValidationError("latitude and longitude are required unless geolocation was denied.")


class LocationSampleSchema(Schema):
    latitude = fields.Float(allow_none=True)
    longitude = fields.Float(allow_none=True)
    city = fields.Str(allow_none=True)
    country = fields.Str(allow_none=True)
    timestamp = fields.DateTime()
    maps_url = fields.Str(allow_none=True)
