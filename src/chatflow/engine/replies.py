"""Reply payload shapes returned to the HTTP boundary.

Button and media replies travel as JSON-encoded strings inside the
``reply`` field; text replies travel as the plain string.
"""

from typing import Literal, Union

from pydantic import BaseModel, Field


class MediaImage(BaseModel):
    type: Literal["image"] = "image"
    url: str
    caption: str = ""


class TextReply(BaseModel):
    type: Literal["text"] = "text"
    text: str

    def encode(self) -> str:
        return self.text


class ButtonReply(BaseModel):
    type: Literal["button"] = "button"
    text: str
    buttons: list[str] = Field(default_factory=list)

    def encode(self) -> str:
        return self.model_dump_json()


class MediaReply(BaseModel):
    type: Literal["media"] = "media"
    text: str = ""
    images: list[MediaImage] = Field(default_factory=list)

    def encode(self) -> str:
        return self.model_dump_json()


ReplyPayload = Union[ButtonReply, MediaReply, TextReply]
