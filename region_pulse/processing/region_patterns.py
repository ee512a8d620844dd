"""
Region keyword patterns

純資料：region -> tier -> pattern 清單。預設不分大小寫；
以 CaseSensitive(...) 包起來的 pattern 保持大小寫敏感 (例如 ICE 不可命中 ice)。
縮寫結尾是句點時不加結尾的 \\b，否則句尾的 "U.S." 會匹配失敗。
"""

import re
from typing import Dict, List


class CaseSensitive(str):
    """標記大小寫敏感的 pattern"""


HOME_REGION = "us"

REGIONS = ("us", "latam", "middle-east", "europe-russia", "asia", "africa")

TIER_WEIGHTS = {"high": 3, "medium": 2, "low": 1}

REGION_DISPLAY_NAMES = {
    "us": "US",
    "latam": "Latin America",
    "middle-east": "Middle East",
    "europe-russia": "Europe-Russia",
    "asia": "Asia",
    "africa": "Africa",
}

_US_STATES = [
    "alabama", "alaska", "arizona", "arkansas", "california", "colorado",
    "connecticut", "delaware", "florida",
    # 美國州 / 國家同名；靠 tie-break 由外國勝出
    "georgia",
    "hawaii", "idaho", "illinois", "indiana", "iowa", "kansas", "kentucky",
    "louisiana", "maine", "maryland", "massachusetts", "michigan", "minnesota",
    "mississippi", "missouri", "montana", "nebraska", "nevada",
    r"new\s+hampshire", r"new\s+jersey", r"new\s+mexico",
    r"north\s+carolina", r"north\s+dakota", "ohio", "oklahoma", "oregon",
    "pennsylvania", r"rhode\s+island", r"south\s+carolina", r"south\s+dakota",
    "tennessee", "texas", "utah", "vermont", "virginia", "washington",
    r"west\s+virginia", "wisconsin", "wyoming",
]

REGION_PATTERNS: Dict[str, Dict[str, List[str]]] = {
    "us": {
        "high": [
            # Government / politics
            r"\bwhite\s+house\b", r"\bcongress(?:ional)?\b", r"\bsenate\b",
            r"\bhouse\s+of\s+rep", r"\bsupreme\s+court\b", r"\bfbi\b", r"\bcia\b",
            r"\bdoj\b", r"\bdepartment\s+of\s+justice\b", r"\bdhs\b",
            r"\bhomeland\s+security\b", CaseSensitive(r"\bICE\b"),
            r"\bsecret\s+service\b", r"\bnational\s+guard\b",
            # People
            r"\bbiden(?:'s)?\b", r"\btrump(?:'s|ian|ism)?\b", r"\bharris(?:'s)?\b",
            r"\bpelosi(?:'s)?\b", r"\bschumer(?:'s)?\b", r"\bmcconnell(?:'s)?\b",
            r"\bmccarthy(?:'s)?\b", r"\bvance(?:'s)?\b", r"\bdesantis(?:'s)?\b",
            r"\baoc\b", r"\bocasio.cortez\b", r"\brfk\b", r"\bkennedy\s+jr\b",
            # Events
            r"\bcapitol\b", r"\bjanuary\s+6\b", r"\bj6\b", r"\b2024\s+election\b",
            r"\bmaga\b", r"\bjeffrey\s+epstein\b", r"\bepstein\b",
        ] + [rf"\b{state}(?:'s)?\b" for state in _US_STATES] + [
            # Agencies
            r"\bepa\b", r"\bfda\b", r"\bjustice\s+department\b",
            r"\bborder\s+patrol\b", r"\bcbp\b", r"\bnypd\b", r"\bnyc\b",
            CaseSensitive(r"\bDEA\b"), CaseSensitive(r"\bATF\b"),
            # Abbreviations
            CaseSensitive(r"\bU\.S\."),
            CaseSensitive(r"(?<![^\s\"'])US(?![^\s\"',.;:!?])"),
            # Cities
            r"\bnew\s+york\b", r"\blos\s+angeles\b", r"\bchicago\b", r"\bhouston\b",
            r"\bphoenix\b", r"\bphiladelphia\b", r"\bsan\s+antonio\b",
            r"\bsan\s+diego\b", r"\bdallas\b", r"\bsan\s+francisco\b", r"\baustin\b",
            r"\bseattle\b", r"\bdenver\b", r"\batlanta\b", r"\bmiami\b",
            r"\bboston\b", r"\bminneapolis\b", r"\bdetroit\b", r"\bportland\b",
            r"\blas\s+vegas\b", r"\bpittsburgh\b", r"\bbaltimore\b",
            # Geographic regions
            r"\beast\s+coast\b", r"\bwest\s+coast\b", r"\bmidwest\b",
            r"\bsouthwest\b", r"\bnortheast\b", r"\bsoutheast\b",
            r"\bpacific\s+northwest\b",
        ],
        "medium": [
            r"\bwashington\s*,?\s*d\.?c\.?(?!\w)", r"\bpentagon\b",
            r"\bstate\s+department\b", r"\bamerican\b",
            r"\bu\.?s\.?\s+(?:military|forces|troops)\b",
            r"\brepublican", r"\bdemocrat", r"\bgop\b",
        ],
        "low": [
            r"\bdomestic\b", r"\bfederal\b", r"\bstate\s+level\b", r"\bgovernor\b",
        ],
    },

    "latam": {
        "high": [
            # Venezuela
            r"\bvenezuela(?:ns?)?\b", r"\bcaracas\b", r"\bmaduro\b", r"\bguaid[oóò]",
            r"\bchavez\b", r"\bchavista", r"\bpdvsa\b", r"\bmaracaibo\b",
            # Brazil
            r"\bbrazil(?:ian)?\b", r"\bbrasilia\b", r"\blula\b", r"\bbolsonaro\b",
            r"\bsao\s+paulo\b", r"\brio\s+de\s+janeiro\b",
            # Argentina
            r"\bargentina\b", r"\bbuenos\s+aires\b", r"\bmilei\b",
            # Mexico
            r"\bmexic(?:o|an)\b", r"\bamlo\b", r"\bsheinbaum\b", r"\bcartel\b",
            # Colombia / Chile / Peru
            r"\bcolombia(?:n)?\b", r"\bbogota\b", r"\bpetro\b", r"\bfarc\b",
            r"\bmedellin\b", r"\bchile(?:an)?\b", r"\bsantiago\b", r"\bboric\b",
            r"\bperu(?:vian)?\b", r"\blima\b",
            # Caribbean
            r"\bcuba(?:n)?\b", r"\bhavana\b", r"\bcastro\b", r"\bhaiti(?:an)?\b",
            r"\bport.au.prince\b", r"\bjamaica(?:n)?\b", r"\bpuerto\s+rico\b",
            r"\bdominican\s+republic\b", r"\bsanto\s+domingo\b",
        ],
        "medium": [
            r"\bessequibo\b", r"\bguyana\b", r"\borinoco\b", r"\becuador\b",
            r"\bquito\b", r"\bbolivia(?:n)?\b", r"\bla\s+paz\b", r"\bparaguay\b",
            r"\buruguay\b", r"\bpanama\b", r"\bcosta\s+rica\b", r"\bnicaragua\b",
            r"\bortega\b", r"\bhonduras\b", r"\bel\s+salvador\b", r"\bbukele\b",
            r"\bguatemala(?:n)?\b", r"\bbahamas\b", r"\btrinidad\b", r"\bbarbados\b",
        ],
        "low": [
            r"\blatin\s+america\b", r"\bsouth\s+america\b", r"\bcaribbean\b",
            r"\bcentral\s+america\b", r"\blatam\b", r"\bmercosur\b",
        ],
    },

    "middle-east": {
        "high": [
            # Israel / Palestine / Lebanon
            r"\bisrael(?:i)?\b", r"\bgaza\b", r"\brafah\b", r"\bwest\s+bank\b",
            r"\btel\s+aviv\b", r"\bjerusalem\b", r"\bhamas\b", r"\bidf\b",
            r"\biron\s+dome\b", r"\bnetanyahu\b", r"\bhezbollah\b",
            r"\bnasrallah\b", r"\blebanon\b", r"\bbeirut\b",
            # Iran / Yemen
            r"\biran(?:ian)?\b", r"\btehran\b", r"\birgc\b", r"\bkhamenei\b",
            r"\byemen(?:i)?\b", r"\bhouthi", r"\bsanaa\b", r"\baden\b",
            # Syria / Iraq
            r"\bsyria(?:n)?\b", r"\bdamascus\b", r"\bassad\b", r"\baleppo\b",
            r"\bidlib\b", r"\biraq(?:i)?\b", r"\bbaghdad\b", r"\berbil\b",
            # Gulf / Jordan
            r"\bsaudi\b", r"\briyadh\b", r"\bred\s+sea\b", r"\bjordan(?:ian)?\b",
            r"\bamman\b",
        ],
        "medium": [
            r"\bmiddle\s+east\b", r"\bpalestinian", r"\bkhan\s+yunis\b",
            r"\bnablus\b", r"\bramallah\b", r"\bgolan\b", r"\bsinai\b",
            r"\bsuez\b", r"\bqassam\b", r"\bqatari?\b", r"\bdoha\b",
            r"\bemirati?\b", r"\bdubai\b", r"\babu\s+dhabi\b", r"\bkuwait",
            r"\bbahrain", r"\boman(?:i)?\b",
        ],
        "low": [
            r"\bshia\b", r"\bsunni\b", r"\bmuslim\s+brotherhood\b", r"\bisis\b",
            r"\bisil\b", r"\bdaesh\b", r"\bjihadist",
        ],
    },

    "europe-russia": {
        "high": [
            # Ukraine
            r"\bukrain(?:e|ian)\b", r"\bkyiv\b", r"\bkharkiv\b", r"\bodes+a\b",
            r"\bzelensky\b", r"\bzelenskyy\b", r"\bazov\b",
            # Russia
            r"\brussia(?:n)?\b", r"\bmoscow\b", r"\bputin\b", r"\bkreml[ie]n\b",
            r"\blavrov\b", r"\bshoigu\b", r"\bgerasimov\b", r"\bwagner\b",
            r"\bprigozhin\b",
            # Front line
            r"\bdonbas\b", r"\bdonetsk\b", r"\bluhansk\b", r"\bcrimea(?:n)?\b",
            r"\bsevastopol\b", r"\bzaporizhzhia\b", r"\bkherson\b", r"\bmariupol\b",
            r"\bbakhmut\b", r"\bavdiivka\b", r"\bkupyansk\b", r"\bsumy\b",
            r"\blviv\b", r"\bdnipro\b", r"\bmykolaiv\b", r"\bchernihiv\b",
            # Belarus
            r"\bbelarus(?:ian)?\b", r"\blukashenko\b", r"\bminsk\b",
            # Europe
            r"\bgerman(?:y)?\b", r"\bberlin\b", r"\bfrance\b", r"\bfrench\b",
            r"\bparis\b", r"\bmacron\b", r"\bbritain\b", r"\bbritish\b",
            r"\blondon\b", r"\bstarmer\b", r"\bpoland\b", r"\bwarsaw\b",
            r"\bnato\b", r"\beuropean\s+union\b", r"\beu\b", r"\bbrussels\b",
            CaseSensitive(r"\bU\.K\.|\bUK\b"),
            r"\bhungary\b", r"\bhungarian\b", r"\borb[aá]n\b", r"\bbudapest\b",
            r"\bital(?:y|ian)\b", r"\brome\b", r"\bmilan\b",
            r"\bnorway\b", r"\bnorwegian\b", r"\boslo\b",
            # Georgia (country)
            r"\btbilisi\b", r"\bsouth\s+ossetia\b", r"\babkhazia\b",
        ],
        "medium": [
            r"\bblack\s+sea\b", r"\bazov\s+sea\b", r"\bkerch\b", r"\bshahed\b",
            r"\bgeran\b", r"\bkinzhal\b", r"\biskander\b", r"\bkalibr\b",
            r"\bs-300\b", r"\bs-400\b", r"\bpatrio?t\b", r"\bhimars\b",
            r"\bleopard\b", r"\babrams\b", r"\bf-16\b", r"\bmig\b", r"\bsu-\d+\b",
            r"\brostov\b", r"\bbelgorod\b", r"\bkursk\b", r"\bbryansk\b",
            r"\bspain\b", r"\bspanish\b", r"\bmadrid\b", r"\bnetherlands\b",
            r"\bamsterdam\b", r"\bbaltic", r"\bscandinavia", r"\bnordic\b",
        ],
        "low": [
            r"\beastern\s+front\b", r"\bsouthern\s+front\b",
            r"\bcounter.?offensive\b", r"\bmobilization\b",
            r"\bpartial\s+mobilization\b", r"\beurope\b",
        ],
    },

    "asia": {
        "high": [
            # Taiwan / China
            r"\btaiwan(?:ese)?\b", r"\btaipei\b", r"\btsai\s+ing.?wen\b",
            r"\btaiwan\s+strait\b", r"\bchina\b", r"\bchinese\b", r"\bbeijing\b",
            r"\bxi\s+jinping\b", CaseSensitive(r"\bPLA\b"),
            CaseSensitive(r"\bPLAN\b"), CaseSensitive(r"\bPLAAF\b"), r"\bccp\b",
            r"\bcommunist\s+party\b", r"\bhong\s+kong\b", r"\bxinjiang\b",
            r"\buighur", r"\btibet(?:an)?\b", r"\bshanghai\b", r"\bshenzhen\b",
            r"\bguangdong\b", r"\bfujian\b",
            # Japan / Korea
            r"\bjapan(?:ese)?\b", r"\btokyo\b", r"\bnorth\s+korea\b",
            r"\bsouth\s+korea\b", r"\bpyongyang\b", r"\bseoul\b", r"\bkim\s+jong\b",
            # Southeast Asia
            r"\bvietnam\b", r"\bhanoi\b", r"\bthailand\b", r"\bbangkok\b",
            r"\bindonesia\b", r"\bjakarta\b", r"\bsingapore\b", r"\bmalaysia\b",
            r"\bphilippine", r"\bmanila\b", r"\bmyanmar\b", r"\bburma\b",
            r"\brangoon\b", r"\byangon\b", r"\bnaypyidaw\b",
            # South Asia
            r"\bindia(?:n)?\b", r"\bnew\s+delhi\b", r"\bmodi\b",
            r"\bpakistan(?:i)?\b", r"\bislamabad\b", r"\bbangladesh(?:i)?\b",
            r"\bdhaka\b", r"\bafghanistan\b", r"\bkabul\b",
        ],
        "medium": [
            r"\bsouth\s+china\s+sea\b", r"\beast\s+china\s+sea\b",
            r"\bspratlys?\b", r"\bparacel", r"\bsenkaku\b", r"\bdiaoyu\b",
            r"\bfirst\s+island\s+chain\b", r"\bquad\b", r"\baukus\b",
            r"\bpacific\s+fleet\b", r"\b7th\s+fleet\b", r"\bindopacific\b",
            r"\basean\b", r"\bcambodia\b", r"\blaos\b", r"\bsri\s+lanka\b",
            r"\bnepal\b",
        ],
        "low": [
            r"\bsemiconductor", r"\btsmc\b", r"\brare\s+earth",
            r"\bsanctions\b.*\bchina\b", r"\basia\b", r"\bpacific\b",
        ],
    },

    "africa": {
        "high": [
            r"\bnigeria(?:n)?\b", r"\bkenya(?:n)?\b", r"\bethiopia(?:n)?\b",
            r"\bsudan(?:ese)?\b", r"\bsouth\s+sudan\b", r"\bsomalia(?:n)?\b",
            r"\bcongo(?:lese)?\b", r"\bdrc\b", r"\bsouth\s+africa(?:n)?\b",
            r"\bcameroon(?:ian)?\b", r"\bghana(?:ian)?\b", r"\btanzania(?:n)?\b",
            r"\buganda(?:n)?\b", r"\brwanda(?:n)?\b", r"\bmozambique\b",
            r"\bmali(?:an)?\b", r"\bniger\b", r"\bburkina\s+faso\b",
            r"\bchad(?:ian)?\b", r"\bsenegal(?:ese)?\b", r"\beritrea(?:n)?\b",
            r"\blibya(?:n)?\b", r"\btunisia(?:n)?\b", r"\balgeria(?:n)?\b",
            r"\bmorocco\b", r"\bmoroccan\b", r"\bzimbabwe(?:an)?\b",
            r"\bangola(?:n)?\b",
            # Cities
            r"\blagos\b", r"\bnairobi\b", r"\baddis\s+ababa\b", r"\bkhartoum\b",
            r"\bpretoria\b", r"\bcape\s+town\b", r"\bjohannesburg\b",
            r"\bdar\s+es\s+salaam\b", r"\bkinshasa\b", r"\bmogadishu\b",
            r"\babuja\b", r"\baccra\b", r"\bkampala\b", r"\bkigali\b",
            r"\btripoli\b", r"\bluanda\b", r"\bdakar\b",
            # Organizations
            r"\bafrican\s+union\b", r"\becowas\b", r"\bboko\s+haram\b",
            r"\bal.?shabaab\b", r"\bmadagascar\b",
        ],
        "medium": [
            r"\bsahel\b", r"\bsub.saharan\b", r"\bhorn\s+of\s+africa\b",
            r"\bmaghreb\b", r"\bwest\s+africa\b", r"\beast\s+africa\b",
            r"\bsouthern\s+africa\b", r"\bcentral\s+africa\b", r"\bnorth\s+africa\b",
            r"\bbenin\b", r"\btogo\b", r"\bgabon\b", r"\bguinea\b",
            r"\bsierra\s+leone\b", r"\bliberia(?:n)?\b", r"\bivory\s+coast\b",
            r"\bcote\s+d.ivoire\b", r"\bmalawi\b", r"\bzambia(?:n)?\b",
            r"\bbotswana\b", r"\bnamibia(?:n)?\b", r"\bswaziland\b",
            r"\beswatini\b", r"\blesotho\b", r"\bdjibouti\b", r"\bmauritania\b",
            r"\bcentral\s+african\s+republic\b", r"\bequatorial\s+guinea\b",
            r"\bcabo\s+verde\b",
        ],
        "low": [
            r"\bafrica\b", r"\bafrican\b", CaseSensitive(r"\bA\.U\.|\bAU\b"),
        ],
    },
}


def compile_region_patterns(
    table: Dict[str, Dict[str, List[str]]] = REGION_PATTERNS
) -> Dict[str, Dict[str, List[re.Pattern]]]:
    """
    編譯 pattern 表

    Args:
        table: region -> tier -> pattern 字串

    Returns:
        region -> tier -> compiled regex
    """
    compiled: Dict[str, Dict[str, List[re.Pattern]]] = {}
    for region, tiers in table.items():
        compiled[region] = {}
        for tier in TIER_WEIGHTS:
            compiled[region][tier] = [
                re.compile(p) if isinstance(p, CaseSensitive) else re.compile(p, re.IGNORECASE)
                for p in tiers.get(tier, [])
            ]
    return compiled


COMPILED_PATTERNS = compile_region_patterns()
