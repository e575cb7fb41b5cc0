from pydantic import BaseModel, ConfigDict


class RoutedTarget(BaseModel):
    """Lambda function and alias resolved from the request host."""

    model_config = ConfigDict(frozen=True)

    function_name: str
    alias: str
