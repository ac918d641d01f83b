from pydantic import BaseModel, ConfigDict


class TriageguyBaseModel(BaseModel):
    # Reports are read back by other tools, so unknown keys must never slip through.
    # If you are overriding this, make sure to keep extra='forbid'.

    model_config = ConfigDict(extra='forbid')
