from pydantic import BaseModel


class SettingsResponse(BaseModel):
    """
    当前生效的设置

    - hasApiKey (bool): 是否配置了补全服务密钥
    - model (str): 模型名称
    - baseUrl (str): 补全服务地址
    - hasDrive (bool): Google Drive 是否已配置
    - hasOneDrive (bool): OneDrive 是否已配置
    - configPath (str): 配置文件路径
    """

    hasApiKey: bool
    model: str
    baseUrl: str
    hasDrive: bool
    hasOneDrive: bool
    configPath: str
