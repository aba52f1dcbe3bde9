"""
@file docs.py
@brief Root landing page
@details
Serves a short HTML page describing the coverage editor API. Interactive
OpenAPI docs live at /api/docs.

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

from countyzones.core import config


def get_root_documentation() -> str:
    """
    @brief Generate the HTML content for the root page
    @return HTML string
    """
    return f"""<!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>CountyZones API</title>
        <style>
            body {{
                font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
                line-height: 1.6;
                color: #333;
                max-width: 860px;
                margin: 40px auto;
                padding: 0 20px;
            }}
            h1 {{ color: #2e7d32; }}
            h2 {{ border-bottom: 2px solid #2e7d32; padding-bottom: 6px; }}
            code {{ background: #f3f3f3; padding: 1px 4px; border-radius: 3px; }}
        </style>
    </head>
    <body>
        <h1>CountyZones API</h1>
        <p>County coverage selection with hex-grid coverage zones. A profile
        covers whole counties, or parts of them marked as grid cells.</p>

        <h2>Endpoints</h2>
        <ul>
            <li><code>GET /counties/{{geo_id}}</code> - County record and bounds</li>
            <li><code>GET /counties/{{geo_id}}/mask</code> - Shade outside the county</li>
            <li><code>GET /counties/{{geo_id}}/grid?grid_size={config.DEFAULT_GRID_SIZE}&amp;clip_edges=true</code> - Hex grid cells</li>
            <li><code>GET /fips/{{fips}}</code> - FIPS to GEO_ID</li>
            <li><code>GET|PUT /profiles/{{profile_id}}/coverage</code> - Operating counties (max {config.MAX_OPERATING_COUNTIES})</li>
            <li><code>GET /health</code> - Component status</li>
        </ul>

        <p>OpenAPI documentation: <a href="/api/docs">/api/docs</a></p>
    </body>
    </html>
    """
