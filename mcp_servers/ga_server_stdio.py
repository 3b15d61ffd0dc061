from typing import Annotated, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from ga_report import GaDataParams, generate_report
from settings import get_settings

mcp = FastMCP("ga")

GA_DATA_DESCRIPTION = "Returns Google Analytics data with optional date ranges and traffic source filtering"


@mcp.tool(name="ga_data", description=GA_DATA_DESCRIPTION)
def ga_data(
    start_date: Annotated[Optional[str], Field(
        description='Start date for the primary period in YYYY-MM-DD format (e.g., "2024-01-01")'
    )] = None,
    end_date: Annotated[Optional[str], Field(
        description='End date for the primary period in YYYY-MM-DD format (e.g., "2024-01-31")'
    )] = None,
    comparison_start_date: Annotated[Optional[str], Field(
        description='Start date for the comparison period in YYYY-MM-DD format (e.g., "2023-01-01")'
    )] = None,
    comparison_end_date: Annotated[Optional[str], Field(
        description='End date for the comparison period in YYYY-MM-DD format (e.g., "2023-01-31")'
    )] = None,
    traffic_source_type: Annotated[Optional[str], Field(
        description='Filter by traffic source type (e.g., "referral", "organic", "direct", "social"); case-insensitive, surrounding whitespace ignored, blank means no filter'
    )] = None,
) -> dict:
    '''
    Return the mock GA report for the requested periods.
    Dataset errors are not caught; they surface as a failed tool call.
    '''
    params = GaDataParams(
        start_date=start_date,
        end_date=end_date,
        comparison_start_date=comparison_start_date,
        comparison_end_date=comparison_end_date,
        traffic_source_type=traffic_source_type,
    )
    settings = get_settings()
    report = generate_report(settings.dataset_path, params, rng=settings.make_rng())
    return report.model_dump(by_alias=True)


if __name__ == "__main__":
    mcp.run()
