#!/usr/bin/env python3
"""
Output Formatting Module for the Token Registry CLI

Renders command results as tables, JSON or YAML.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel
from tabulate import tabulate


class OutputFormatter:
    """Output formatter for CLI results."""

    def __init__(self, format_type: str = 'table', max_width: int = 40):
        """
        Initialize output formatter.

        Args:
            format_type: Output format (table, json, yaml)
            max_width: Cell width at which table values are truncated
        """
        self.format_type = format_type
        self.max_width = max_width

    def format(self, data: Any, headers: Optional[List[str]] = None) -> str:
        """Format data according to the configured format type."""
        data = self.to_plain(data)

        if self.format_type == 'json':
            return self.format_json(data)
        elif self.format_type == 'yaml':
            return self.format_yaml(data)
        else:
            return self.format_table(data, headers)

    @staticmethod
    def to_plain(data: Any) -> Any:
        """Convert registry models (and lists of them) to wire dicts."""
        if isinstance(data, BaseModel):
            return data.model_dump(mode='json', by_alias=True)
        if isinstance(data, (list, tuple)):
            return [OutputFormatter.to_plain(item) for item in data]
        return data

    def format_json(self, data: Any) -> str:
        return json.dumps(data, indent=2, default=self._json_encoder)

    def format_yaml(self, data: Any) -> str:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False).rstrip()

    def format_table(self, data: Any, headers: Optional[List[str]] = None) -> str:
        if isinstance(data, dict):
            return self._format_dict_table(data)
        elif isinstance(data, list):
            return self._format_list_table(data, headers)
        else:
            return str(data)

    def _format_dict_table(self, data: Dict[str, Any]) -> str:
        """Format dictionary as a key-value table."""
        table_data = [[key, self._format_value(value)] for key, value in data.items()]
        return tabulate(table_data, tablefmt='plain')

    def _format_list_table(self, data: List[Any], headers: Optional[List[str]] = None) -> str:
        """Format list as a table."""
        if not data:
            return "No data available"

        if not isinstance(data[0], dict):
            return '\n'.join(str(item) for item in data)

        if headers is None:
            headers = list(data[0].keys())

        table_data = [
            [self._format_value(item.get(h, '')) for h in headers]
            for item in data
        ]
        return tabulate(table_data, headers=headers, tablefmt='grid')

    def _format_value(self, value: Any) -> str:
        """Format individual value for table display."""
        if value is None:
            return '-'
        if isinstance(value, (dict, list)):
            value = json.dumps(value, default=self._json_encoder)
        value = str(value)
        if len(value) > self.max_width:
            value = value[:self.max_width - 3] + '...'
        return value

    def _json_encoder(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        return str(obj)
