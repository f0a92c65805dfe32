# LLM Gateway - OpenAI API compatible gateway with model fallback
# Copyright (C) 2025
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Entry point for the LLM Gateway application.
"""
import logging

import uvicorn
from llm_gateway.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "llm_gateway.app:app",
        host=settings.host,
        port=settings.port,
        log_level=logging.getLevelName(settings.get_log_level()).lower()
    )
