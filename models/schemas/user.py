from marshmallow import EXCLUDE, Schema, fields, validates, ValidationError


class CredentialsSchema(Schema):
    """Body of /auth/register and /auth/login."""

    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")


class ForgotPasswordSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)


class ProfileOutSchema(Schema):
    email = fields.String()
