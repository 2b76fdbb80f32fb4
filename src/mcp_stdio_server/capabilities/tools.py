"""Built-in tools: greeting, BMI calculator and simulated weather lookup."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from mcp_stdio_server.registry.base import ToolDefinition, ToolResult

# Simulated latency of the weather backend, in seconds
WEATHER_LATENCY = 0.05

GREET_TOOL = ToolDefinition(
    name="greet",
    description="Greets a person with a friendly message",
    input_schema={
        "type": "object",
        "properties": {
            "name": {
                "type": "string",
                "description": "The name of the person to greet",
            },
        },
        "required": ["name"],
    },
    annotations={"title": "Greet Tool", "readOnlyHint": True},
)

BMI_TOOL = ToolDefinition(
    name="calculate-bmi",
    description="Calculates Body Mass Index from weight and height",
    input_schema={
        "type": "object",
        "properties": {
            "weightKg": {
                "type": "number",
                "description": "Weight in kilograms",
            },
            "heightM": {
                "type": "number",
                "description": "Height in meters",
                "minimum": 0.1,
            },
        },
        "required": ["weightKg", "heightM"],
    },
    annotations={"title": "BMI Calculator", "readOnlyHint": True},
)

WEATHER_TOOL = ToolDefinition(
    name="fetch-weather",
    description="Fetches weather information for a given city",
    input_schema={
        "type": "object",
        "properties": {
            "city": {
                "type": "string",
                "description": "The city name",
            },
        },
        "required": ["city"],
    },
    annotations={"title": "Fetch Weather", "readOnlyHint": True, "openWorldHint": True},
)


def greet(arguments: dict[str, Any]) -> ToolResult:
    """Greet the named person."""
    return ToolResult.text(f"Hello, {arguments['name']}! Welcome to MCP.")


def calculate_bmi(arguments: dict[str, Any]) -> ToolResult:
    """Compute BMI = weight / height^2."""
    weight_kg = arguments["weightKg"]
    height_m = arguments["heightM"]
    if height_m <= 0:
        return ToolResult.error("Height must be positive")

    bmi = weight_kg / (height_m * height_m)
    return ToolResult.text(f"BMI: {bmi:.2f}")


async def fetch_weather(arguments: dict[str, Any]) -> ToolResult:
    """Return a simulated weather report for a city.

    No external service is contacted; the latency of a remote call is
    simulated so the handler exercises the server's bounded wait.
    """
    city = arguments["city"]
    await asyncio.sleep(WEATHER_LATENCY)

    weather_data = {
        "city": city,
        "temperature": "72°F",
        "condition": "Partly Cloudy",
        "humidity": "65%",
        "windSpeed": "10 mph",
    }
    report = json.dumps(weather_data, indent=2, ensure_ascii=False)
    return ToolResult.text(f"Weather for {city}:\n{report}")
