class PersonNotFound(Exception):
    def __init__(self, id_number: str, message: str = "Person not found"):
        super().__init__(message)
        self.id_number = id_number
        self.message = message


class PersonValidationError(ValueError):
    pass


class DuplicatePerson(PersonValidationError):
    pass


class MediaValidationError(ValueError):
    pass


class UnsupportedMediaType(MediaValidationError):
    def __init__(self, media_type: str | None):
        super().__init__(f"Unsupported media type: {media_type}")
        self.media_type = media_type


class MissingMediaFile(MediaValidationError):
    def __init__(self):
        super().__init__("Media file is required")


class AttachmentConflict(Exception):
    """Concurrent writers kept winning; the append was not applied."""
