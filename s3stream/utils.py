import sys
import urllib.parse
import xml.etree.ElementTree as ET

from loguru import logger

S3_XML_NAMESPACE = "http://s3.amazonaws.com/doc/2006-03-01/"


# From https://stackoverflow.com/questions/1094841/get-a-human-readable-version-of-a-file-size
def humanize_bytes(num, suffix="B"):
    for unit in ("", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi"):
        if abs(num) < 1024.0:
            return f"{num:3.1f} {unit}{suffix}"
        num /= 1024.0
    return f"{num:.1f} Yi{suffix}"


def configure_logging(level="INFO"):
    """ Replace the default loguru sink with one on stderr at the given level.
    """
    logger.remove()
    logger.add(sys.stderr, level=level)


def dir_path(path):
    """ Ensure that the given path ends in a slash, 
        indicating that it points to a folder and not an object.
    """
    if path and not path.endswith('/'):
        return path + '/'
    return path


def object_url(endpoint, key):
    """ Append an object key to the endpoint URL. The endpoint is treated
        as a folder, so a bucket given in its path is kept. Keys are taken
        literally: "." and ".." segments are escaped so that neither the
        URL join nor the HTTP client resolves them.
    """
    segments = []
    for segment in key.lstrip('/').split('/'):
        quoted = urllib.parse.quote(segment, safe='~')
        if quoted in ('.', '..'):
            quoted = quoted.replace('.', '%2E')
        segments.append(quoted)
    return dir_path(str(endpoint)) + '/'.join(segments)


def url_encode(s):
    """ Percent-encode a value for embedding in a query string.
    """
    if s is None: return None
    return urllib.parse.quote(s, safe='')


def add_elem(parent, key):
    """ Add a new child element to the given XML parent.
    """
    return ET.SubElement(parent, key)


def add_telem(parent, key, value):
    """ Add a text element as a child of the given XML parent.
    """
    if value is None:
        return None
    elem = add_elem(parent, key)
    elem.text = str(value)
    return elem


def elem_to_str(elem):
    """ Render the given XML element to a string.
    """
    return ET.tostring(elem, encoding="utf-8", xml_declaration=True)


def parse_xml(xml):
    """ Parse the given XML string into an XML element.
    """
    return ET.fromstring(xml)


def local_name(tag):
    """ Strip any '{namespace}' qualifier from an element tag.
    """
    return tag.rsplit('}', 1)[-1]


def find_child_text(root, name):
    """ Return the text of the first direct child of root whose local name 
        matches, ignoring namespaces. Returns None if there is no such child.
    """
    for child in root:
        if local_name(child.tag) == name:
            return child.text or ''
    return None


def get_complete_multipart_xml(parts):
    """ Creates the S3 CompleteMultipartUpload document for the given 
        mapping of part number to ETag. Parts are listed in ascending
        part number order whatever order the mapping holds them in.
    """
    root = ET.Element("CompleteMultipartUpload", xmlns=S3_XML_NAMESPACE)
    for part_number, etag in sorted(parts.items()):
        part_elem = add_elem(root, "Part")
        add_telem(part_elem, "PartNumber", part_number)
        add_telem(part_elem, "ETag", etag)
    return elem_to_str(root)
