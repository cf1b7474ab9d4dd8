"""
Device and location details for admin login auditing
"""
import ipaddress
import logging

import requests
from django.conf import settings
from user_agents import parse as parse_user_agent

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Client IP from proxy headers, falling back to the socket address
    """
    forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded_for:
        ip_address = forwarded_for.split(',')[0].strip()
    else:
        ip_address = request.META.get('HTTP_X_REAL_IP') or request.META.get('REMOTE_ADDR')

    if ip_address and ip_address.startswith('::ffff:'):
        ip_address = ip_address[len('::ffff:'):]

    try:
        return str(ipaddress.ip_address(ip_address))
    except ValueError:
        return None


def is_public_ip(ip_address):
    try:
        ip = ipaddress.ip_address(ip_address)
    except ValueError:
        return False
    return ip.is_global


def get_device_type(user_agent):
    if user_agent.is_tablet:
        return 'tablet'
    if user_agent.is_mobile:
        return 'mobile'
    if user_agent.is_bot:
        return 'bot'
    return 'desktop'


def lookup_location(ip_address):
    """
    Geolocate a public IP address
    Returns None for private addresses or when the lookup fails
    """
    if not ip_address or not is_public_ip(ip_address):
        return None

    url = f"{settings.GEOLOCATION_API_URL.rstrip('/')}/{ip_address}/json/"

    try:
        response = requests.get(url, timeout=settings.GEOLOCATION_TIMEOUT_SECONDS)
        response.raise_for_status()
        data = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning("Geolocation lookup failed for %s: %s", ip_address, e)
        return None

    if data.get('error'):
        logger.warning("Geolocation lookup rejected for %s: %s", ip_address, data.get('reason'))
        return None

    return {
        'country': data.get('country_name') or data.get('country') or '',
        'country_code': (data.get('country_code') or '')[:2],
        'region': data.get('region') or data.get('region_code') or '',
        'city': data.get('city') or '',
        'latitude': data.get('latitude'),
        'longitude': data.get('longitude'),
        'timezone': data.get('timezone') or '',
        'isp': data.get('org') or data.get('asn') or '',
    }


def collect_device_info(request):
    """
    Build the LoginSession fields for the current request
    """
    user_agent_string = request.META.get('HTTP_USER_AGENT', '')
    user_agent = parse_user_agent(user_agent_string)
    ip_address = get_client_ip(request)

    browser_name = user_agent.browser.family or ''
    browser_version = user_agent.browser.version_string or ''
    os_name = user_agent.os.family or ''
    os_version = user_agent.os.version_string or ''
    device_type = get_device_type(user_agent)
    device_model = user_agent.device.model or user_agent.device.family or ''

    info = {
        'ip_address': ip_address,
        'user_agent': user_agent_string,
        'browser': f"{browser_name} {browser_version}".strip(),
        'browser_name': browser_name,
        'browser_version': browser_version,
        'os': f"{os_name} {os_version}".strip(),
        'os_name': os_name,
        'os_version': os_version,
        'device': f"{device_type} ({device_model})" if device_model else device_type,
        'device_type': device_type,
        'device_model': device_model,
        'location': '',
        'country': '',
        'country_code': '',
        'region': '',
        'city': '',
        'latitude': None,
        'longitude': None,
        'timezone': '',
        'isp': '',
    }

    location = lookup_location(ip_address)
    if location:
        info.update(location)
        info['location'] = ', '.join(
            part for part in (location['city'], location['region'], location['country']) if part
        )

    return info


def device_info_payload(info):
    """
    camelCase view of collect_device_info() for API responses
    """
    return {
        'ipAddress': info['ip_address'],
        'userAgent': info['user_agent'],
        'browser': info['browser'],
        'browserName': info['browser_name'],
        'browserVersion': info['browser_version'],
        'os': info['os'],
        'osName': info['os_name'],
        'osVersion': info['os_version'],
        'device': info['device'],
        'deviceType': info['device_type'],
        'deviceModel': info['device_model'],
        'location': info['location'],
        'country': info['country'],
        'countryCode': info['country_code'],
        'region': info['region'],
        'city': info['city'],
        'latitude': info['latitude'],
        'longitude': info['longitude'],
        'timezone': info['timezone'],
        'isp': info['isp'],
    }
