import logging
import os
from dataclasses import dataclass

import jinja2

from .errors import CreateTemplateError, ExecuteTemplateError, FileIsNotDirError

logger = logging.getLogger(__name__)

TEMPLATE_LIST_FILES = '''<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>Index of {{ path }}</title>
  </head>
  <body>
    <h1>Index of {{ path }}</h1>
    <form method="post" enctype="multipart/form-data">
      <label>
        Select files
        <input type="file" name="file" multiple>
      </label>
      <input type="submit" value="Upload">
    </form>
    <table>
      <thead>
        <tr>
          <th>Name</th>
          <th>Size</th>
        </tr>
      </thead>
      <tbody>
      {%- for entry in entries %}
        <tr>
          {%- if entry.is_dir %}
          <td><a href="{{ entry.name | urlencode }}/">{{ entry.name }}/</a></td>
          {%- else %}
          <td><a href="{{ entry.name | urlencode }}">{{ entry.name }}</a></td>
          {%- endif %}
          <td>{{ entry.size | format_bytes }}</td>
        </tr>
      {%- endfor %}
      </tbody>
    </table>
  </body>
</html>
'''

UNIT = 1024

@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    size: int
    is_dir: bool

def format_bytes(size):
    if size < UNIT:
        return f'{size} B'
    div, exp = UNIT, 0
    n = size // UNIT
    while n >= UNIT:
        div *= UNIT
        exp += 1
        n //= UNIT
    return f'{size / div:.1f} {"KMGTPE"[exp]}iB'

def list_directory(path):
    if not os.path.isdir(path):
        raise FileIsNotDirError(f'File is not dir: {os.path.basename(path)}')
    entries = []
    with os.scandir(path) as it:
        for item in it:
            # Like lstat: a symlink is listed as itself and never followed
            try:
                info = item.stat(follow_symlinks=False)
            except FileNotFoundError:
                # Removed while listing
                continue
            entries.append(DirectoryEntry(item.name, info.st_size,
                                          item.is_dir(follow_symlinks=False)))
    entries.sort(key=lambda entry: entry.name.lower())
    return entries

class DirectoryLister:
    def __init__(self, template=TEMPLATE_LIST_FILES):
        self._source = template
        self._template = None

    @property
    def template(self):
        if self._template is None:
            env = jinja2.Environment(autoescape=True, undefined=jinja2.StrictUndefined)
            env.filters['format_bytes'] = format_bytes
            try:
                self._template = env.from_string(self._source)
            except jinja2.TemplateError as exc:
                raise CreateTemplateError(f'Create template error {exc}') from exc
        return self._template

    def render(self, url_path, entries):
        try:
            return self.template.render(path=url_path, entries=entries)
        except jinja2.TemplateError as exc:
            raise ExecuteTemplateError(f'Execute template error {exc}') from exc

    def render_directory(self, url_path, path):
        entries = list_directory(path)
        logger.debug(f'Listing {len(entries)} entries of {path}')
        return self.render(url_path, entries)
