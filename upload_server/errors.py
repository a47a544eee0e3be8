class FileServerError(Exception):
    pass

### 404

class NotFoundError(FileServerError):
    pass

### 400

class BadRequestError(FileServerError):
    pass

class MalformedMultipartError(BadRequestError):
    pass

class InvalidFieldError(BadRequestError):
    def __init__(self, name):
        super().__init__(f"Field Name != 'file'. Got {name}")
        self.name = name

class ClientDisconnectedError(BadRequestError):
    pass

### 500

class InternalError(FileServerError):
    pass

class FileIsNotRegularError(InternalError):
    pass

class FileIsNotDirError(InternalError):
    pass

class CreateTemplateError(InternalError):
    pass

class ExecuteTemplateError(InternalError):
    pass

class ReadError(InternalError):
    pass

class UploadError(InternalError):
    pass
