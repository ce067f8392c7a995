"""HTML pages for the S3 static website lab."""
from html import escape
from textwrap import dedent


def render_index_page(title: str = "My Static Website",
                      heading: str = "Welcome to my website",
                      body: str = "This page is served straight from an S3 bucket.") -> str:
    return dedent(
        f"""\
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8">
            <title>{escape(title)}</title>
        </head>
        <body>
            <h1>{escape(heading)}</h1>
            <p>{escape(body)}</p>
        </body>
        </html>
        """
    )


def render_error_page() -> str:
    return render_index_page(
        title="Page not found",
        heading="404 - Page not found",
        body="The page you requested does not exist.",
    )
