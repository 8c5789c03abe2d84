from microscan.images import build_image_urls


def test_gallery_has_twenty_distinct_urls():
    urls = build_image_urls("900123", "555555")
    assert len(urls) == 20
    assert len(set(urls)) == 20


def test_front_series_comes_first():
    urls = build_image_urls("900123", "555555")
    assert urls[0] == "https://productimages.microcenter.com/900123_555555_01_front_zoom.jpg"
    assert urls[9].endswith("_10_front_zoom.jpg")


def test_package_series_restarts_at_01():
    urls = build_image_urls("900123", "555555")
    assert urls[10] == "https://productimages.microcenter.com/900123_555555_01_package_zoom.jpg"
    assert urls[19].endswith("_10_package_zoom.jpg")
    assert not any("_11_" in u for u in urls)


def test_custom_host():
    urls = build_image_urls("1", "2", host="https://img.test")
    assert urls[0] == "https://img.test/1_2_01_front_zoom.jpg"
