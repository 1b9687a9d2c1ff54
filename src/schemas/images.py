from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    prompt: str | None = None


class GenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Image generated successfully"
    image_path: str = Field(alias="imagePath")


class EditResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Image edited successfully"
    edited_path: str = Field(alias="editedPath")


class ErrorResponse(BaseModel):
    error: str
