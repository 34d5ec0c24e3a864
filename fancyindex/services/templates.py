"""Fixed HTML fragments of a listing, in document order.

The request path is written between ``HEAD1`` and ``HEAD2`` and again
between ``BODY1`` and ``BODY2``; rows go between ``LIST1`` and ``LIST2``.
"""

HEAD1 = b"""<!DOCTYPE html>
<html>
<head>
<meta http-equiv="content-type" content="text/html; charset=utf-8"/>
<title>Index of """

HEAD2 = b"""</title>
<style type="text/css">
body { font-family: Arial, sans-serif; margin: 2rem; }
h1 { margin-bottom: 0.5rem; }
table { width: 100%; border-collapse: collapse; margin-top: 1rem; }
th, td { text-align: left; padding: 0.3rem 0.5rem; border-bottom: 1px solid #ddd; }
td + td { font-family: monospace; white-space: pre; }
tr.e { background-color: #f6f6f6; }
tr.o { background-color: #ffffff; }
a { color: #0a5ec2; text-decoration: none; }
a:hover { text-decoration: underline; }
#readme { width: 100%; min-height: 20rem; border: 1px solid #ddd; }
</style>
</head>
"""

BODY1 = b"""<body>
<h1>Index of """

BODY2 = b"""</h1>
"""

LIST1 = b"""<table id="list">
<thead><tr><th>File Name</th><th>File Size</th><th>Date</th></tr></thead>
<tbody>
<tr class="o"><td colspan="3"><a href="../">Parent directory/</a></td></tr>
"""

LIST2 = b"""</tbody>
</table>
"""

BODY3 = b""

BODY4 = b"""</body>
"""

FOOT1 = b"""</html>
"""

TEMPLATE_SIZE = sum(
    len(fragment)
    for fragment in (HEAD1, HEAD2, BODY1, BODY2, LIST1, LIST2, BODY3, BODY4, FOOT1)
)

# one row, whitespace stripped:
#   <tr class="X"><td><a href="U">name</a></td><td>size</td><td>date</td></tr>
ROW_OPEN = b'<tr class="'
ROW_CLASSES = (b"e", b"o")
ROW_LINK = b'"><td><a href="'
ROW_TEXT = b'">'
ROW_NAME_CLOSE = b"</a></td><td>"
ROW_SIZE_CLOSE = b"</td><td>"
ROW_CLOSE = b"</td></tr>"
CRLF = b"\r\n"

README_OPEN = b'<iframe id="readme" src="'
README_CLOSE = b'">(readme file)</iframe>'

CONTENT_TYPE = "text/html"
