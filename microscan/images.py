from typing import List

IMAGE_HOST = "https://productimages.microcenter.com"
GALLERY_SIZE = 10


def image_url(product_id: str, sku: str, number: int, view: str = "front",
              host: str = IMAGE_HOST) -> str:
    return f"{host}/{product_id}_{sku}_{number:02d}_{view}_zoom.jpg"


def build_image_urls(product_id: str, sku: str, host: str = IMAGE_HOST) -> List[str]:
    """
    Gallery URLs for a product: front shots 01-10, then package shots 01-10.
    The package series restarts at 01. The first URL is the primary image.
    """
    urls = [image_url(product_id, sku, n, "front", host) for n in range(1, GALLERY_SIZE + 1)]
    urls += [image_url(product_id, sku, n, "package", host) for n in range(1, GALLERY_SIZE + 1)]
    return urls
