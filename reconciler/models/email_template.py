from pydantic import BaseModel, ConfigDict


class EmailTemplate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    event_type: str
    subject: str = ""
    html_body: str = ""
    active: bool = True  # False = notifications disabled for this event

    class Settings:
        name = "email_templates"
