from fastapi.templating import Jinja2Templates

from config import settings
from domain.formatting import format_date, format_score, relative_date

templates = Jinja2Templates(directory=settings.TEMPLATE_DIR)
templates.env.filters["formatDateInterval"] = relative_date
templates.env.filters["formatDate"] = format_date
templates.env.filters["formatScore"] = format_score
templates.env.globals["app_name"] = settings.APP_NAME
