from pydantic import BaseModel


class Pagination(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_more: bool
