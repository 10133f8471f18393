"""Resolver panel and CDN canonical-name signatures."""
from __future__ import annotations

from typing import Tuple

# Public resolvers queried for every domain, in declaration order.
RESOLVER_PANEL: Tuple[str, ...] = (
    "114.114.114.114:53",
    "8.8.8.8:53",
    "1.1.1.1:53",
    "9.9.9.9:53",
    "208.67.222.222:53",
    "84.200.69.80:53",
    "223.6.6.6:53",
    "223.5.5.5:53",
    "119.29.29.29:53",
    "103.86.96.100:53",
    "182.254.116.116:53",
    "156.154.70.1:53",
    "194.146.106.194:53",
    "45.90.28.0:53",
    "185.228.168.9:53",
    "76.76.2.0:53",
    "94.140.14.14:53",
    "64.6.64.6:53",
)

# Canonical-name fragments whose presence in a CNAME target proves CDN fronting.
# Evaluated in this order; the first hit is the one reported.
CDN_SIGNATURES: Tuple[str, ...] = (
    # International
    ".cloudfront.net.",      # AWS CloudFront
    ".akamaized.net.",       # Akamai
    ".akamaicdn.org.",       # Akamai
    ".edgesuite.net.",       # Akamai
    ".edgekey.net.",         # Akamai
    ".fastly.net.",          # Fastly
    ".cdn.cloudflare.net.",  # Cloudflare
    ".azureedge.net.",       # Azure CDN
    ".stackpathdns.com.",    # StackPath
    ".incapdns.net.",        # Imperva Incapsula
    ".cdngc.net.",           # CDNetworks
    ".kxcdn.com.",           # KeyCDN
    ".b-cdn.net.",           # BunnyCDN
    ".lldns.net.",           # Limelight
    ".hwcdn.net.",           # Highwinds
    # Mainland China
    ".alikunlun.com.",       # Alibaba Cloud CDN
    ".kunlun.com.",          # Alibaba Cloud CDN
    ".alicdn.com.",          # Alibaba Cloud CDN
    ".cdnga.com.",           # Alibaba Cloud global acceleration
    ".lxdns.com.",           # Wangsu
    ".wscdns.com.",          # Wangsu
    ".chinacache.net.",      # ChinaCache
    ".cdn.dnsv1.com.",       # Tencent Cloud CDN
    ".tcdn.qq.com.",         # Tencent Cloud CDN
    ".cdnhwc1.com.",         # Huawei Cloud CDN
    ".cdnhwc2.com.",         # Huawei Cloud CDN
    ".cdnhwc3.com.",         # Huawei Cloud CDN
    ".cdnhwccs.com.",        # Huawei Cloud
    ".su.baidubce.com.",     # Baidu Cloud acceleration
    ".bdydns.com.",          # Baidu Cloud acceleration
    ".jomodns.com.",         # Knownsec
    ".qingcdn.com.",         # BaishanCloud
    ".21cvcdn.com.",         # 21Vianet
    ".cdnsvc.com.",          # ChinaCache
    ".cachecn.com.",         # Tongxing Wandian
    ".ourdvsss.com.",        # Dnion
    ".yunjiasu-cdn.net.",    # Baidu AI Cloud
    # Other common
    ".msecnd.net.",          # Azure (China)
    ".cdntip.com.",          # Tencent Cloud overseas
    ".cdn20.com.",           # UCloud
    ".cdntips.com.",         # Tencent Cloud overseas
    ".gccdn.cn.",            # Anti-DDoS CDN
    ".cdntip.net.",          # Tencent Cloud
    ".txcdn.cn.",            # Tencent Cloud
)

# Distinct A records at or above this count indicate CDN fronting.
CDN_IP_THRESHOLD = 2

# Representative value returned in place of an IP when nothing resolved.
UNRESOLVABLE_SENTINEL = "xx"
